#!/usr/bin/env python
"""List users holding any portal role, highest rank first."""
from __future__ import annotations

import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = REPO_ROOT / ".env"

if ENV_PATH.is_file():
    load_dotenv(ENV_PATH, override=False)

from iskate_admin.roles import sort_by_rank  # noqa: E402
from iskate_admin.store import StoreError  # noqa: E402
from iskate_admin.user_service import list_users  # noqa: E402


def main() -> int:
    print("Fetching users with portal roles…")
    try:
        users = list_users()
    except StoreError as exc:
        print(f"Firestore error: {exc}", file=sys.stderr)
        return 1

    privileged = sort_by_rank(
        [user for user in users if user.roles],
        key=lambda user: user.roles,
        name=lambda user: user.username,
    )
    for user in privileged:
        print(f"UID={user.uid} | username={user.username or '—'} | roles={', '.join(user.sorted_roles)}")
    print(f"Total privileged users: {len(privileged)}" if privileged else "No privileged users found.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
