"""Descriptor-driven CRUD for the settings-like collections.

Each collection is described once by a ``ResourceDescriptor`` (declared
fields, required-fields message, uniqueness key, immutability flag, optional
reference checks and enrichment). ``ResourceHandler`` applies the same
create/update/delete/activate rules to every descriptor. ``transition``
covers the one-step status changes of the workflow collections.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from mock_servers.hrm_mock.db import DocumentStore, coerce_id, iso_now, same_id
from mock_servers.hrm_mock.errors import BadRequest, Conflict, Forbidden, NotFound

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

# str: trimmed text; number: numeric coercion; bool: truthiness;
# active: true unless explicitly false; raw: stored as sent.
FieldKind = Literal["str", "number", "bool", "active", "raw"]


class FieldSpec(BaseModel):
    name: str
    kind: FieldKind = "str"
    required: bool = False
    default: Any = None
    choices: Optional[tuple[str, ...]] = None
    choices_message: str = "Valeur invalide"
    invalid_message: Optional[str] = None


class ResourceDescriptor(BaseModel):
    name: str
    collection: str
    fields: List[FieldSpec] = Field(default_factory=list)
    required_message: str = "Champs requis manquants"
    unique_field: Optional[str] = None
    unique_message: str = "Code déjà existant"
    guard_required_flag: bool = False
    toggleable: bool = False
    drop_on_update: tuple[str, ...] = ()
    check_refs: Optional[Callable[..., None]] = None
    enrich: Optional[Callable[..., Record]] = None


class _Invalid(Exception):
    pass


def _text(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, bool):
        return "true"
    return str(value).strip()


def _number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            raise _Invalid()
        return value
    if value is None:
        raise _Invalid()
    text = str(value).strip()
    if text == "":
        return 0
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        raise _Invalid() from None
    if math.isnan(number):
        raise _Invalid()
    return number


class ResourceHandler:
    """CRUD and activation for one descriptor against an injected store."""

    def __init__(self, descriptor: ResourceDescriptor, store: DocumentStore) -> None:
        self.descriptor = descriptor
        self.store = store

    # --- Helpers ---

    def _present(self, record: Record) -> Record:
        if self.descriptor.enrich is None:
            return record
        return self.descriptor.enrich(self.store, record)

    def _get(self, raw_id: Any) -> Record:
        record = self.store.find(self.descriptor.collection, coerce_id(raw_id))
        if record is None:
            raise NotFound()
        return record

    def _check_unique(self, record: Record, exclude_id: Any = None) -> None:
        field = self.descriptor.unique_field
        if not field or not record.get(field):
            return
        wanted = str(record[field]).lower()
        for row in self.store.get_collection(self.descriptor.collection):
            if exclude_id is not None and same_id(row.get("id"), exclude_id):
                continue
            if str(row.get(field)).lower() == wanted:
                raise Conflict(self.descriptor.unique_message)

    def _check_choices(self, spec: FieldSpec, value: Any) -> None:
        if spec.choices is not None and value and str(value) not in spec.choices:
            raise BadRequest(spec.choices_message)

    def _normalize_new(self, payload: Record) -> Record:
        normalized: Record = {}
        for spec in self.descriptor.fields:
            value = payload.get(spec.name)
            if spec.kind == "str":
                normalized[spec.name] = _text(value)
                if spec.required and not normalized[spec.name]:
                    raise BadRequest(self.descriptor.required_message)
            elif spec.kind == "number":
                if not spec.required and value in (None, "") and spec.default is not None:
                    normalized[spec.name] = spec.default
                    continue
                try:
                    normalized[spec.name] = _number(value)
                except _Invalid:
                    if spec.required:
                        raise BadRequest(self.descriptor.required_message) from None
                    raise BadRequest(spec.invalid_message or "Valeur numérique invalide") from None
            elif spec.kind == "bool":
                normalized[spec.name] = bool(value)
            elif spec.kind == "active":
                normalized[spec.name] = value is not False
            else:
                if spec.required and not value:
                    raise BadRequest(self.descriptor.required_message)
                normalized[spec.name] = value if value is not None else spec.default
            self._check_choices(spec, normalized[spec.name])
        return normalized

    def _normalize_merged(self, merged: Record) -> Record:
        for spec in self.descriptor.fields:
            if spec.name not in merged:
                continue
            value = merged[spec.name]
            if spec.kind == "str":
                merged[spec.name] = _text(value)
            elif spec.kind == "number":
                try:
                    merged[spec.name] = _number(value)
                except _Invalid:
                    raise BadRequest(
                        spec.invalid_message or "Valeur numérique invalide"
                    ) from None
            elif spec.kind == "bool":
                merged[spec.name] = bool(value)
            self._check_choices(spec, merged[spec.name])
        for name in self.descriptor.drop_on_update:
            merged.pop(name, None)
        return merged

    # --- Operations ---

    def list_all(self) -> List[Record]:
        return [
            self._present(r) for r in self.store.get_collection(self.descriptor.collection)
        ]

    def show(self, raw_id: Any) -> Record:
        return self._present(self._get(raw_id))

    def create(self, payload: Record) -> Record:
        row = self._normalize_new(payload)
        self._check_unique(row)
        if self.descriptor.check_refs is not None:
            self.descriptor.check_refs(self.store, row)
        stamp = iso_now()
        record = {
            "id": payload.get("id") or self.store.next_id(),
            **row,
            "created_at": stamp,
            "updated_at": stamp,
        }
        self.store.insert(self.descriptor.collection, record)
        return self._present(record)

    def update(self, raw_id: Any, payload: Record) -> Record:
        existing = self._get(raw_id)
        record_id = existing["id"]
        if self.descriptor.guard_required_flag and existing.get("is_required"):
            logger.info(
                "Refused update of required %s #%s", self.descriptor.name, record_id
            )
            raise Forbidden("Modification interdite pour un paramètre requis")

        merged = {**existing, **payload, "id": record_id, "updated_at": iso_now()}
        merged = self._normalize_merged(merged)
        if self.descriptor.guard_required_flag:
            merged["is_required"] = bool(existing.get("is_required"))
        self._check_unique(merged, exclude_id=record_id)
        if self.descriptor.check_refs is not None:
            self.descriptor.check_refs(self.store, merged)

        existing.clear()
        existing.update(merged)
        self.store.write()
        return self._present(existing)

    def delete(self, raw_id: Any) -> Record:
        existing = self._get(raw_id)
        record_id = existing["id"]
        if self.descriptor.guard_required_flag and existing.get("is_required"):
            logger.info(
                "Refused deletion of required %s #%s", self.descriptor.name, record_id
            )
            raise Forbidden("Suppression interdite pour un paramètre requis")
        self.store.remove(self.descriptor.collection, record_id)
        return {"id": record_id}

    def set_active(self, raw_id: Any, active: bool) -> Record:
        existing = self._get(raw_id)
        updated = self.store.merge(
            self.descriptor.collection,
            existing["id"],
            {"is_active": active, "updated_at": iso_now()},
        )
        return self._present(updated)


# --- Status lifecycles ---


def require(store: DocumentStore, collection: str, raw_id: Any, missing: str) -> Record:
    """Record addressed by a path id, or 404 with the collection's message."""
    record = store.find(collection, coerce_id(raw_id))
    if record is None:
        raise NotFound(missing)
    return record


def transition(
    store: DocumentStore,
    collection: str,
    raw_id: Any,
    changes: Record,
    missing: str,
) -> Record:
    """Merge a status change into one record, 404 when it is absent."""
    record = require(store, collection, raw_id, missing)
    updated = store.merge(collection, record["id"], changes)
    logger.info(
        "%s #%s moved to %s",
        collection,
        record["id"],
        changes.get("statut") or changes.get("status"),
    )
    return updated
