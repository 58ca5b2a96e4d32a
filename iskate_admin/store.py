"""Firestore document access for the admin portal.

Only a handful of primitives are exposed: point lookups (single and batched),
collection enumeration, merge-upserts and precondition-guarded updates. Every
Google API, retry and credentials error is converted into :class:`StoreError`
so callers deal with a single failure type.
"""
from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Iterable, Mapping, MutableMapping

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions
from google.cloud import firestore

from google_credentials import GCP_PROJECT_ID, get_service_account_credentials

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when a Firestore operation fails."""


class RecordNotFound(StoreError):
    """Raised when a document that must exist is absent."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found: {path}")
        self.path = path


class ConcurrentUpdateError(StoreError):
    """Raised when a guarded write loses against a concurrent write."""


# RetryError and GoogleAuthError do not derive from GoogleAPICallError.
STORE_FAILURES = (
    google_exceptions.GoogleAPICallError,
    google_exceptions.RetryError,
    google_auth_exceptions.GoogleAuthError,
)


@lru_cache(maxsize=1)
def _get_firestore_client():
    client_kwargs: MutableMapping[str, Any] = {}
    credentials = get_service_account_credentials()
    if credentials is not None:
        client_kwargs["credentials"] = credentials

    project_id = GCP_PROJECT_ID or (getattr(credentials, "project_id", "") if credentials else "")
    if project_id:
        client_kwargs["project"] = project_id
    return firestore.Client(**client_kwargs)


def firestore_client():
    """Shared Firestore client for modules that need more than the primitives below."""

    return _get_firestore_client()


def _snapshot_data(snapshot: Any) -> dict[str, Any] | None:
    if not getattr(snapshot, "exists", False):
        return None
    return dict(snapshot.to_dict() or {})


def get_document(path: str) -> dict[str, Any] | None:
    """Return the document at ``path`` or ``None`` when it does not exist."""

    try:
        snapshot = _get_firestore_client().document(path).get()
    except STORE_FAILURES as exc:
        raise StoreError(f"Failed to read {path}: {exc}") from exc
    return _snapshot_data(snapshot)


def get_document_version(path: str) -> tuple[dict[str, Any] | None, datetime | None]:
    """Like :func:`get_document`, also returning the document's last update time."""

    try:
        snapshot = _get_firestore_client().document(path).get()
    except STORE_FAILURES as exc:
        raise StoreError(f"Failed to read {path}: {exc}") from exc
    return _snapshot_data(snapshot), getattr(snapshot, "update_time", None)


def get_documents(paths: Iterable[str]) -> dict[str, dict[str, Any] | None]:
    """Look up several documents in one batch.

    The lookups carry no ordering dependency and the result is only returned
    once all of them have settled. A failure in any of them fails the batch.
    """

    unique_paths = list(dict.fromkeys(paths))
    if not unique_paths:
        return {}

    results: dict[str, dict[str, Any] | None] = {path: None for path in unique_paths}
    try:
        client = _get_firestore_client()
        references = [client.document(path) for path in unique_paths]
        for snapshot in client.get_all(references):
            results[snapshot.reference.path] = _snapshot_data(snapshot)
    except STORE_FAILURES as exc:
        raise StoreError(f"Failed to read {len(unique_paths)} documents: {exc}") from exc
    return results


def list_collection(path: str) -> list[tuple[str, dict[str, Any]]]:
    """Enumerate every document of a collection as ``(document_id, data)`` pairs."""

    try:
        snapshots = list(_get_firestore_client().collection(path).stream())
    except STORE_FAILURES as exc:
        raise StoreError(f"Failed to list {path}: {exc}") from exc
    return [(str(snapshot.id), dict(snapshot.to_dict() or {})) for snapshot in snapshots]


def merge_document(path: str, data: Mapping[str, Any]) -> None:
    """Create or merge into the document at ``path``.

    Nested maps are merged key by key; fields not named in ``data`` keep
    their stored values.
    """

    try:
        _get_firestore_client().document(path).set(dict(data), merge=True)
    except STORE_FAILURES as exc:
        raise StoreError(f"Failed to write {path}: {exc}") from exc
    logger.debug("Merged fields %s into %s", sorted(data), path)


def update_document(
    path: str,
    data: Mapping[str, Any],
    *,
    if_unchanged_since: datetime | None = None,
) -> None:
    """Update fields of an existing document.

    With ``if_unchanged_since`` the write only lands when the document's last
    update time still matches, otherwise :class:`ConcurrentUpdateError` is
    raised.
    """

    try:
        client = _get_firestore_client()
        kwargs: dict[str, Any] = {}
        if if_unchanged_since is not None:
            kwargs["option"] = client.write_option(last_update_time=if_unchanged_since)
        client.document(path).update(dict(data), **kwargs)
    except google_exceptions.NotFound as exc:
        raise RecordNotFound(path) from exc
    except google_exceptions.FailedPrecondition as exc:
        raise ConcurrentUpdateError(f"{path} was modified by another operator; reload and try again.") from exc
    except STORE_FAILURES as exc:
        raise StoreError(f"Failed to update {path}: {exc}") from exc
    logger.debug("Updated fields %s of %s", sorted(data), path)


__all__ = [
    "STORE_FAILURES",
    "StoreError",
    "firestore_client",
    "RecordNotFound",
    "ConcurrentUpdateError",
    "get_document",
    "get_document_version",
    "get_documents",
    "list_collection",
    "merge_document",
    "update_document",
]
