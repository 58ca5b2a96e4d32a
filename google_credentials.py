"""Resolve Google service-account credentials for Firestore access."""
from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from google.auth.credentials import Credentials
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

GCP_PROJECT_ID = (os.getenv("GCP_PROJECT_ID") or os.getenv("GCP_PROJECT") or "").strip() or None

_ENV_JSON_KEYS = (
    "GOOGLE_CREDENTIALS_JSON",
    "GOOGLE_APPLICATION_CREDENTIALS_JSON",
)
_ENV_PATH_KEYS = (
    "GOOGLE_APPLICATION_CREDENTIALS",
    "FIREBASE_SERVICE_ACCOUNT",
)
_SECRET_SECTIONS = ("gcp_service_account", "firebase_service_account")
_REQUIRED_FIELDS = {"type", "project_id", "private_key", "client_email"}
_DEFAULT_CREDENTIAL_FILE = Path("service-account.json")


def _as_service_account_info(candidate: Any) -> dict[str, Any] | None:
    if isinstance(candidate, str):
        text = candidate.strip()
        if not text:
            return None
        try:
            candidate = json.loads(text)
        except ValueError:
            return None
    if not isinstance(candidate, Mapping):
        return None
    info = {str(key): value for key, value in candidate.items()}
    return info if _REQUIRED_FIELDS.issubset(info) else None


def _info_from_env() -> dict[str, Any] | None:
    for key in _ENV_JSON_KEYS:
        info = _as_service_account_info(os.getenv(key))
        if info:
            return info
    return None


def _info_from_streamlit_secrets() -> dict[str, Any] | None:
    import streamlit as st

    try:
        secrets = st.secrets
        sections = [secrets.get(name) for name in _SECRET_SECTIONS]
    except FileNotFoundError:
        # No secrets.toml configured for this deployment.
        return None

    for section in sections:
        info = _as_service_account_info(dict(section) if isinstance(section, Mapping) else section)
        if info:
            return info
    return None


def _credential_paths() -> list[Path]:
    paths = [Path(raw).expanduser() for raw in (os.getenv(key) for key in _ENV_PATH_KEYS) if raw]
    paths.append(_DEFAULT_CREDENTIAL_FILE)
    return paths


@lru_cache(maxsize=1)
def get_service_account_credentials() -> Credentials | None:
    """Return service-account credentials from a file, env JSON, or Streamlit secrets.

    ``None`` lets the Firestore client fall back to Application Default
    Credentials.
    """

    for path in _credential_paths():
        if not path.is_file():
            continue
        try:
            return service_account.Credentials.from_service_account_file(str(path))
        except ValueError as exc:
            logger.warning("Ignoring unusable credential file %s: %s", path, exc)

    info = _info_from_env() or _info_from_streamlit_secrets()
    if info:
        try:
            return service_account.Credentials.from_service_account_info(info)
        except ValueError as exc:
            logger.warning("Ignoring malformed service-account JSON: %s", exc)
    return None


__all__ = ["GCP_PROJECT_ID", "get_service_account_credentials"]
