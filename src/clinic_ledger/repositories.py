from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Protocol

from clinic_ledger.models import LedgerSnapshot
from clinic_ledger.schemas import snapshot_from_state

logger = logging.getLogger(__name__)

STATE_KEY = "ncd_state"


class SnapshotRepository(Protocol):
    def load_snapshot(self) -> LedgerSnapshot:
        ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any:
        ...


class InMemorySnapshotRepository:
    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self.snapshot = snapshot or LedgerSnapshot()

    def load_snapshot(self) -> LedgerSnapshot:
        return self.snapshot

    def replace(self, snapshot: LedgerSnapshot) -> None:
        self.snapshot = snapshot


class KeyValueSnapshotRepository:
    """Reads the application state document from any store exposing `get(key)`."""

    def __init__(self, store: KeyValueStore, key: str = STATE_KEY):
        self.store = store
        self.key = key

    def load_state(self) -> Mapping[str, Any]:
        raw = self.store.get(self.key)
        if raw is None:
            logger.warning("No state document stored under %r; using an empty snapshot", self.key)
            return {}
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = json.loads(raw)
        if not isinstance(raw, Mapping):
            raise ValueError(f"State document under {self.key!r} must be a mapping, got {type(raw).__name__}")
        return raw

    def load_snapshot(self) -> LedgerSnapshot:
        return snapshot_from_state(self.load_state())
