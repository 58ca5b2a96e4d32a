from __future__ import annotations

import copy
import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest
from google.api_core import exceptions as google_exceptions

from iskate_admin import store

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _deep_merge(target: dict, data: dict) -> dict:
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class FakeSnapshot:
    def __init__(self, reference: "FakeDocumentRef", data: dict | None, update_time: datetime | None):
        self.reference = reference
        self.id = reference.id
        self.exists = data is not None
        self.update_time = update_time
        self._data = data

    def to_dict(self) -> dict | None:
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, client: "FakeFirestoreClient", path: str):
        self._client = client
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def get(self) -> FakeSnapshot:
        self._client._maybe_fail("read")
        return self._client._snapshot(self.path)

    def set(self, data: dict, merge: bool = False) -> None:
        self._client._maybe_fail("write")
        existing = self._client.documents.get(self.path)
        if merge and existing is not None:
            _deep_merge(existing, data)
        else:
            self._client.documents[self.path] = copy.deepcopy(data)
        self._client._touch(self.path)

    def update(self, data: dict, option: Any = None) -> None:
        self._client._maybe_fail("write")
        if self.path not in self._client.documents:
            raise google_exceptions.NotFound(f"No document to update: {self.path}")
        expected = getattr(option, "last_update_time", None)
        if expected is not None and expected != self._client.update_times.get(self.path):
            raise google_exceptions.FailedPrecondition("update_time mismatch")
        self._client.documents[self.path].update(copy.deepcopy(data))
        self._client._touch(self.path)


class FakeQuery:
    def __init__(self, client: "FakeFirestoreClient", path: str, order: tuple[str, bool] | None = None, limit: int | None = None):
        self._client = client
        self._path = path
        self._order = order
        self._limit = limit

    def order_by(self, field: str, direction: Any = None) -> "FakeQuery":
        return FakeQuery(self._client, self._path, (field, direction == "DESCENDING"), self._limit)

    def limit(self, count: int) -> "FakeQuery":
        return FakeQuery(self._client, self._path, self._order, count)

    def stream(self):
        self._client._maybe_fail("read")
        prefix = self._path + "/"
        snapshots = [
            self._client._snapshot(path)
            for path in self._client.documents
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]
        if self._order:
            field, descending = self._order
            snapshots.sort(key=lambda snap: snap.to_dict().get(field), reverse=descending)
        if self._limit is not None:
            snapshots = snapshots[: self._limit]
        return iter(snapshots)


class FakeCollectionRef(FakeQuery):
    def document(self, doc_id: str | None = None) -> FakeDocumentRef:
        doc_id = doc_id or f"auto{next(self._client._ids)}"
        return FakeDocumentRef(self._client, f"{self._path}/{doc_id}")


class FakeFirestoreClient:
    """In-memory stand-in for ``google.cloud.firestore.Client`` keyed by document path."""

    def __init__(self):
        self.documents: dict[str, dict] = {}
        self.update_times: dict[str, datetime] = {}
        self.batch_calls: list[list[str]] = []
        self.fail_on: set[str] = set()
        self._clock = itertools.count(1)
        self._ids = itertools.count(1)

    def _maybe_fail(self, kind: str) -> None:
        if kind in self.fail_on:
            raise google_exceptions.ServiceUnavailable(f"simulated {kind} outage")

    def _touch(self, path: str) -> None:
        self.update_times[path] = _EPOCH + timedelta(seconds=next(self._clock))

    def _snapshot(self, path: str) -> FakeSnapshot:
        return FakeSnapshot(FakeDocumentRef(self, path), copy.deepcopy(self.documents.get(path)), self.update_times.get(path))

    def seed(self, path: str, data: dict) -> None:
        self.documents[path] = copy.deepcopy(data)
        self._touch(path)

    def document(self, path: str) -> FakeDocumentRef:
        return FakeDocumentRef(self, path)

    def collection(self, path: str) -> FakeCollectionRef:
        return FakeCollectionRef(self, path)

    def get_all(self, references):
        refs = list(references)
        self.batch_calls.append([ref.path for ref in refs])
        self._maybe_fail("read")
        # The real client yields in completion order, not request order.
        for ref in reversed(refs):
            yield self._snapshot(ref.path)

    def write_option(self, *, last_update_time: datetime) -> SimpleNamespace:
        return SimpleNamespace(last_update_time=last_update_time)


@pytest.fixture
def fake_firestore(monkeypatch) -> FakeFirestoreClient:
    client = FakeFirestoreClient()
    monkeypatch.setattr(store, "_get_firestore_client", lambda: client)
    return client
