"""JSON document store for the HRM mock server.

One document maps collection names to lists of records. Every record carries
an ``id`` that is unique within its collection. The store is created once per
app and injected into route handlers through ``get_store``.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import Request

from hrm_core.config import ADMIN_ROLE, DEFAULT_ADMIN_USER
from mock_servers.hrm_mock.errors import InternalError

logger = logging.getLogger(__name__)

SEED_PATH = Path(__file__).parent / "data" / "seed_data.json"

Record = Dict[str, Any]


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_now() -> str:
    """UTC timestamp in the `2024-01-01T00:00:00.000Z` form."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO date or timestamp into naive UTC; None when unparseable."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def coerce_id(raw: Any) -> Any:
    """Turn a path segment into a number when it is numeric, else keep it."""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return raw
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return str(raw)
    if math.isnan(value) or math.isinf(value):
        return str(raw)
    return int(value) if value.is_integer() else value


def same_id(left: Any, right: Any) -> bool:
    """Loose id equality: ``7`` and ``"7"`` designate the same record."""
    if left is None or right is None:
        return False
    return left == right or str(left) == str(right)


class DocumentStore:
    """In-memory document keyed by collection name, optionally file-backed."""

    def __init__(
        self,
        document: Optional[Dict[str, Any]] = None,
        path: Optional[Path] = None,
    ) -> None:
        self.document: Dict[str, Any] = document if document is not None else {}
        self.path = Path(path) if path is not None else None
        self._bootstrap()

    # --- Construction ---

    @classmethod
    def from_seed(cls) -> DocumentStore:
        with open(SEED_PATH, "r", encoding="utf-8") as f:
            return cls(json.load(f))

    @classmethod
    def from_file(cls, path: str | Path) -> DocumentStore:
        """Load ``path``, seeding it from the packaged document if missing."""
        path = Path(path)
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
            logger.info("Loaded %s collections from %s", len(document), path)
            return cls(document, path=path)
        store = cls.from_seed()
        store.path = path
        store.write()
        logger.info("Seeded new document at %s", path)
        return store

    def _bootstrap(self) -> None:
        if not self.has_collection("users"):
            admin = dict(DEFAULT_ADMIN_USER)
            admin["roles"] = [dict(ADMIN_ROLE)]
            self.document["users"] = [admin]
        if not self.has_collection("sessions"):
            self.document["sessions"] = []

    # --- ID generation ---

    @staticmethod
    def next_id() -> int:
        """Millisecond timestamp; two creations in the same ms collide."""
        return now_ms()

    # --- Collections ---

    def collection_names(self) -> List[str]:
        return [k for k, v in self.document.items() if isinstance(v, list)]

    def has_collection(self, name: str) -> bool:
        return isinstance(self.document.get(name), list)

    def get_collection(self, name: str) -> List[Record]:
        rows = self.document.get(name)
        return rows if isinstance(rows, list) else []

    def ensure_collection(self, name: str) -> List[Record]:
        if not self.has_collection(name):
            self.document[name] = []
        return self.document[name]

    # --- CRUD ---

    def find(self, name: str, record_id: Any) -> Optional[Record]:
        for record in self.get_collection(name):
            if same_id(record.get("id"), record_id):
                return record
        return None

    def where(self, name: str, predicate: Callable[[Record], bool]) -> List[Record]:
        return [r for r in self.get_collection(name) if predicate(r)]

    def insert(self, name: str, record: Record) -> Record:
        if not record.get("id"):
            record["id"] = self.next_id()
        self.ensure_collection(name).append(record)
        self.write()
        return record

    def insert_many(self, name: str, records: List[Record]) -> List[Record]:
        self.ensure_collection(name).extend(records)
        self.write()
        return records

    def merge(self, name: str, record_id: Any, patch: Record) -> Optional[Record]:
        """Shallow-merge ``patch`` over an existing record."""
        existing = self.find(name, record_id)
        if existing is None:
            return None
        existing.update(patch)
        self.write()
        return existing

    def remove(self, name: str, record_id: Any) -> List[Record]:
        return self.remove_where(name, lambda r: same_id(r.get("id"), record_id))

    def remove_where(
        self, name: str, predicate: Callable[[Record], bool]
    ) -> List[Record]:
        rows = self.get_collection(name)
        removed = [r for r in rows if predicate(r)]
        if removed:
            rows[:] = [r for r in rows if not predicate(r)]
            self.write()
        return removed

    # --- Persistence ---

    def write(self) -> None:
        """Flush the document to disk when file-backed."""
        if self.path is None:
            return
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.document, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.exception("Failed to flush document to %s", self.path)
            raise InternalError(str(exc)) from exc

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self.document)


def get_store(request: Request) -> DocumentStore:
    """FastAPI dependency returning the store bound to the running app."""
    return request.app.state.store
