#!/usr/bin/env python
"""Grant or revoke a portal role directly in Firestore.

This is the only way to hand out the ``owner`` role, which the portal itself
never modifies. Run it once to bootstrap the first owner and admin.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = REPO_ROOT / ".env"

if ENV_PATH.is_file():
    load_dotenv(ENV_PATH, override=False)

from iskate_admin.constants import ROLE_NAMES  # noqa: E402
from iskate_admin.roles import bootstrap_role, fetch_user_roles  # noqa: E402
from iskate_admin.store import StoreError  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Grant or revoke an iSkate portal role.")
    parser.add_argument("uid", help="Firebase Authentication UID")
    parser.add_argument("role", choices=ROLE_NAMES, help="Role to change")
    parser.add_argument(
        "--remove",
        action="store_true",
        help="Revoke the role instead of granting it.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        bootstrap_role(args.uid, args.role, give=not args.remove)
        roles = fetch_user_roles(args.uid)
    except StoreError as exc:
        print(f"Firestore error: {exc}", file=sys.stderr)
        return 1

    status = "removed" if args.remove else "granted"
    print(f"Role {args.role} {status} for UID={args.uid}; current roles: {', '.join(sorted(roles)) or 'none'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
