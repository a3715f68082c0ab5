"""Authoritative in-memory snapshot and its single write path.

Every committed snapshot is treated as immutable: writers build a new
`Snapshot` (replacing whole records and whole collection lists) and hand it
to `commit`, which persists it to the blob store and only then swaps it in.
Readers get deep copies.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from starlette.requests import HTTPConnection

from config import PERSIST_BACKOFF_SECONDS, PERSIST_RETRIES, STORAGE_KEY
from database import BlobStore
from models import Snapshot, User
from seed import build_seed_snapshot
from services.passwords import hash_password

logger = logging.getLogger("nexus.store")

COLLECTION_FIELDS = (
    "patients",
    "doctors",
    "wards",
    "beds",
    "appointments",
    "medications",
    "prescriptions",
    "shifts",
)


class PersistenceError(RuntimeError):
    """The blob store rejected the snapshot after every retry."""


def serialize_snapshot(snapshot: Snapshot) -> str:
    return snapshot.model_dump_json()


def _apply_defaults(raw: dict) -> dict:
    """Fill in fields that older snapshots do not carry."""
    seed: Optional[Snapshot] = None

    def _seed() -> Snapshot:
        nonlocal seed
        if seed is None:
            seed = build_seed_snapshot()
        return seed

    for field in COLLECTION_FIELDS:
        if raw.get(field) is None:
            raw[field] = []
    if not raw.get("users"):
        raw["users"] = [user.model_dump() for user in _seed().users]
    if raw.get("audit_logs") is None:
        raw["audit_logs"] = [entry.model_dump() for entry in _seed().audit_logs]
    if raw.get("notifications") is None:
        raw["notifications"] = []

    current_user = raw.get("current_user") or {}
    if not current_user.get("id"):
        raw["current_user"] = _seed().current_user.model_dump()

    for user in raw["users"]:
        legacy_password = user.pop("password", None)
        if not user.get("password_hash") and legacy_password:
            user["password_hash"] = hash_password(legacy_password)
    return raw


def deserialize_snapshot(payload: str) -> Snapshot:
    raw = json.loads(payload)
    if not isinstance(raw, dict):
        raise ValueError("Snapshot payload must be a JSON object")
    return Snapshot.model_validate(_apply_defaults(raw))


class StateStore:
    def __init__(
        self,
        blob_store: BlobStore,
        snapshot: Snapshot,
        key: str = STORAGE_KEY,
        retries: int = PERSIST_RETRIES,
        backoff_seconds: float = PERSIST_BACKOFF_SECONDS,
    ):
        self.blob_store = blob_store
        self.key = key
        self.retries = max(1, retries)
        self.backoff_seconds = backoff_seconds
        self._snapshot = snapshot
        self._lock = threading.RLock()

    @classmethod
    def load(cls, blob_store: BlobStore, key: str = STORAGE_KEY, **kwargs) -> "StateStore":
        payload = blob_store.get(key)
        if payload is None:
            logger.info("No snapshot under %s, writing demo data", key)
            store = cls(blob_store, build_seed_snapshot(), key=key, **kwargs)
            store.commit(store._snapshot)
            return store
        return cls(blob_store, deserialize_snapshot(payload), key=key, **kwargs)

    def read(self) -> Snapshot:
        with self._lock:
            return self._snapshot.model_copy(deep=True)

    @contextmanager
    def transaction(self) -> Iterator[Snapshot]:
        """Hold the write lock and expose the committed snapshot. Do not mutate it."""
        with self._lock:
            yield self._snapshot

    def commit(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._persist(serialize_snapshot(snapshot))
            self._snapshot = snapshot

    def _persist(self, payload: str) -> None:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retries + 1):
            try:
                self.blob_store.put(self.key, payload)
                return
            except Exception as exc:
                last_error = exc
                logger.warning("Persist attempt %d/%d failed: %s", attempt, self.retries, exc)
                if attempt < self.retries:
                    time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
        raise PersistenceError(f"Could not persist snapshot '{self.key}'") from last_error

    def find_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            for user in self._snapshot.users:
                if user.id == user_id:
                    return user.model_copy(deep=True)
        return None


def get_store(request: HTTPConnection) -> StateStore:
    return request.app.state.store
