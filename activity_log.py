"""Audit trail of operator actions, stored in Firestore."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, MutableMapping, Sequence

from google.cloud import firestore

from iskate_admin.store import STORE_FAILURES, StoreError, firestore_client

_LOGGER = logging.getLogger(__name__)

ACTIVITY_LOG_ENABLED = os.getenv("ACTIVITY_LOG_ENABLED", "true").strip().lower() not in {"0", "false", "no"}
ACTIVITY_LOG_COLLECTION = os.getenv("FIRESTORE_ACTIVITY_COLLECTION", "").strip() or "admin_activity"

_ACTIVITY_LOG_ACTIVE = False
_ACTIVITY_DISABLE_REASON: str | None = None

_PARAM_SLOTS = 5


@dataclass(slots=True)
class ActivityLogEntry:
    """One operator action as recorded in the audit collection."""

    id: str
    type: str
    action: str
    result: str
    user_id: str | None
    client_ip: str | None
    timestamp: datetime
    params: tuple[str | None, ...]
    metadata: Mapping[str, Any] | None


def _get_activity_collection():
    return firestore_client().collection(ACTIVITY_LOG_COLLECTION)


def _disable_logging(reason: str) -> None:
    global _ACTIVITY_LOG_ACTIVE, _ACTIVITY_DISABLE_REASON
    if _ACTIVITY_LOG_ACTIVE:
        _LOGGER.warning("Disabling activity logging: %s", reason)
    _ACTIVITY_LOG_ACTIVE = False
    _ACTIVITY_DISABLE_REASON = reason


def init_activity_log() -> None:
    """Check the audit collection is reachable and enable logging."""

    global _ACTIVITY_LOG_ACTIVE, _ACTIVITY_DISABLE_REASON
    if not ACTIVITY_LOG_ENABLED:
        _disable_logging("ACTIVITY_LOG_ENABLED is false")
        return

    try:
        list(_get_activity_collection().limit(1).stream())
    except Exception as exc:  # credentials and client construction errors vary by environment
        _disable_logging(str(exc))
        return

    _ACTIVITY_LOG_ACTIVE = True
    _ACTIVITY_DISABLE_REASON = None
    _LOGGER.debug("Activity logging enabled using Firestore collection '%s'", ACTIVITY_LOG_COLLECTION)


def is_activity_logging_enabled() -> bool:
    return _ACTIVITY_LOG_ACTIVE


def get_activity_logging_status() -> tuple[bool, str | None]:
    return _ACTIVITY_LOG_ACTIVE, _ACTIVITY_DISABLE_REASON


def _normalize_string(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _normalize_result(result: str) -> str:
    normalized = _normalize_string(result).lower()
    return "fail" if normalized in {"fail", "failure", "error"} else "success"


def _normalize_params(params: Sequence[Any] | None) -> tuple[str | None, ...]:
    padded = list(params or [])[:_PARAM_SLOTS]
    padded.extend([None] * (_PARAM_SLOTS - len(padded)))
    return tuple(_normalize_string(value) or None for value in padded)


def log_event(
    *,
    type: str,
    action: str,
    result: str,
    user_id: str | None,
    params: Sequence[str | None] | None = None,
    client_ip: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> ActivityLogEntry | None:
    """Record an operator action.

    Returns the stored entry, or ``None`` when logging is disabled or the
    write fails. A failed write disables further logging for the process.
    """

    if not _ACTIVITY_LOG_ACTIVE:
        return None

    now = datetime.now(timezone.utc)
    normalized_params = _normalize_params(params)
    payload: MutableMapping[str, Any] = {
        "type": _normalize_string(type) or "unknown",
        "action": _normalize_string(action) or "unknown",
        "result": _normalize_result(result),
        "user_id": _normalize_string(user_id) or None,
        "client_ip": _normalize_string(client_ip) or None,
        "timestamp": now,
    }
    for index, value in enumerate(normalized_params, start=1):
        payload[f"param{index}"] = value
    if metadata:
        payload["metadata"] = dict(metadata)

    try:
        doc_ref = _get_activity_collection().document()
        doc_ref.set(payload)
    except (*STORE_FAILURES, StoreError) as exc:
        _disable_logging(str(exc))
        _LOGGER.warning("Failed to log activity event (%s: %s): %s", type, action, exc)
        return None

    return ActivityLogEntry(
        id=str(getattr(doc_ref, "id", "")),
        type=payload["type"],
        action=payload["action"],
        result=payload["result"],
        user_id=payload["user_id"],
        client_ip=payload["client_ip"],
        timestamp=now,
        params=normalized_params,
        metadata=dict(metadata) if metadata else None,
    )


def _coerce_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value)
        except ValueError:
            ts = datetime.fromtimestamp(0, tz=timezone.utc)
    else:
        ts = datetime.fromtimestamp(0, tz=timezone.utc)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _document_to_entry(document: Any) -> ActivityLogEntry:
    data = document.to_dict() or {}
    metadata = data.get("metadata")
    return ActivityLogEntry(
        id=str(getattr(document, "id", "")),
        type=_normalize_string(data.get("type")) or "unknown",
        action=_normalize_string(data.get("action")) or "unknown",
        result=_normalize_result(str(data.get("result", "success"))),
        user_id=_normalize_string(data.get("user_id")) or None,
        client_ip=_normalize_string(data.get("client_ip")) or None,
        timestamp=_coerce_timestamp(data.get("timestamp")),
        params=_normalize_params([data.get(f"param{index}") for index in range(1, _PARAM_SLOTS + 1)]),
        metadata=metadata if isinstance(metadata, Mapping) else None,
    )


def fetch_recent_activity(*, limit: int = 20) -> list[ActivityLogEntry]:
    """Return the most recent audit entries, newest first."""

    if limit <= 0 or limit > 500:
        raise ValueError("limit must be between 1 and 500")

    try:
        query = _get_activity_collection().order_by("timestamp", direction=firestore.Query.DESCENDING).limit(limit)
        documents = list(query.stream())
    except STORE_FAILURES as exc:
        raise StoreError(f"Failed to read activity log: {exc}") from exc
    return [_document_to_entry(document) for document in documents]


__all__ = [
    "ActivityLogEntry",
    "ACTIVITY_LOG_COLLECTION",
    "ACTIVITY_LOG_ENABLED",
    "fetch_recent_activity",
    "get_activity_logging_status",
    "init_activity_log",
    "is_activity_logging_enabled",
    "log_event",
]
