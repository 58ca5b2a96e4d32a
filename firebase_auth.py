"""Firebase Authentication helpers for operator sign-in."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import firebase_admin
import requests
from firebase_admin import auth as admin_auth, credentials


logger = logging.getLogger(__name__)

FIREBASE_WEB_API_KEY = (os.getenv("FIREBASE_WEB_API_KEY") or "").strip()

_IDENTITY_BASE_URL = "https://identitytoolkit.googleapis.com/v1"
_SECURETOKEN_URL = "https://securetoken.googleapis.com/v1/token"
_REQUEST_TIMEOUT = 10

_FRIENDLY_MESSAGES = {
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password. Please check your credentials and try again.",
    "INVALID_PASSWORD": "Invalid email or password. Please check your credentials and try again.",
    "EMAIL_NOT_FOUND": "Invalid email or password. Please check your credentials and try again.",
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many failed attempts. Please wait a moment and try again.",
}


class FirebaseAuthError(RuntimeError):
    """Raised when Firebase Authentication rejects a request."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(slots=True)
class AuthSession:
    """Signed-in principal returned by sign-in and token refresh."""

    uid: str
    email: str
    id_token: str
    refresh_token: str
    expires_at: datetime
    display_name: str | None = None

    @property
    def expires_in(self) -> timedelta:
        return max(self.expires_at - datetime.now(timezone.utc), timedelta(0))


def _require_api_key() -> str:
    if not FIREBASE_WEB_API_KEY:
        raise RuntimeError("FIREBASE_WEB_API_KEY is not configured; cannot sign operators in.")
    return FIREBASE_WEB_API_KEY


def _error_code(data: Any) -> str | None:
    error = data.get("error") if isinstance(data, Mapping) else None
    if isinstance(error, Mapping):
        # Identity Toolkit appends details after a colon, e.g. "WEAK_PASSWORD : ..."
        message = str(error.get("message") or "")
        return message.split(":", 1)[0].strip() or None
    if isinstance(error, str):
        return error
    return None


def _post(url: str, **kwargs: Any) -> MutableMapping[str, Any]:
    try:
        response = requests.post(url, timeout=_REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as exc:
        raise FirebaseAuthError(f"Could not reach Firebase Authentication: {exc}") from exc

    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise FirebaseAuthError("Firebase Authentication returned a non-JSON response") from exc

    if response.status_code >= 400:
        code = _error_code(data)
        description = data.get("error_description") if isinstance(data, Mapping) else None
        message = _FRIENDLY_MESSAGES.get(code or "") or description or code or "Firebase Authentication request failed"
        raise FirebaseAuthError(message, code=code)

    if not isinstance(data, MutableMapping):
        raise FirebaseAuthError("Unexpected Firebase Authentication response shape")
    return data


def _parse_auth_session(data: Mapping[str, Any]) -> AuthSession:
    try:
        expires_seconds = int(data.get("expiresIn") or data.get("expires_in") or 3600)
    except (TypeError, ValueError):
        expires_seconds = 3600

    return AuthSession(
        uid=str(data.get("localId") or data.get("user_id") or ""),
        email=str(data.get("email") or ""),
        id_token=str(data.get("idToken") or data.get("id_token") or ""),
        refresh_token=str(data.get("refreshToken") or data.get("refresh_token") or ""),
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_seconds),
        display_name=data.get("displayName") or None,
    )


def sign_in(email: str, password: str) -> AuthSession:
    """Authenticate an operator with email/password."""

    key = _require_api_key()
    payload = {
        "email": email,
        "password": password,
        "returnSecureToken": True,
    }
    data = _post(f"{_IDENTITY_BASE_URL}/accounts:signInWithPassword?key={key}", json=payload)
    return _parse_auth_session(data)


def refresh_id_token(refresh_token: str) -> AuthSession:
    """Exchange a refresh token for a fresh ID token."""

    key = _require_api_key()
    payload = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }
    data = _post(_SECURETOKEN_URL, params={"key": key}, data=payload)
    return _parse_auth_session(data)


def _resolve_service_account_path() -> Path | None:
    for raw in (os.getenv("GOOGLE_APPLICATION_CREDENTIALS"), os.getenv("FIREBASE_SERVICE_ACCOUNT")):
        if not raw:
            continue
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        if path.is_file():
            return path
    return None


def ensure_firebase_admin_initialized() -> firebase_admin.App:
    """Initialise the Firebase Admin SDK once per process."""

    if firebase_admin._apps:  # type: ignore[attr-defined]
        return firebase_admin.get_app()

    options: dict[str, Any] = {}
    project_id = (os.getenv("GCP_PROJECT_ID") or os.getenv("GCP_PROJECT") or "").strip()
    if project_id:
        options["projectId"] = project_id

    service_account_path = _resolve_service_account_path()
    if service_account_path:
        cred = credentials.Certificate(str(service_account_path))
    else:
        cred = credentials.ApplicationDefault()
    logger.debug("Initialising Firebase Admin SDK (project=%s)", project_id or "default")
    return firebase_admin.initialize_app(cred, options or None)


def verify_id_token(id_token: str, *, check_revoked: bool = False) -> Mapping[str, Any]:
    """Verify an ID token with firebase_admin and return its decoded claims."""

    ensure_firebase_admin_initialized()
    return admin_auth.verify_id_token(id_token, check_revoked=check_revoked)


__all__ = [
    "AuthSession",
    "FirebaseAuthError",
    "ensure_firebase_admin_initialized",
    "refresh_id_token",
    "sign_in",
    "verify_id_token",
]
