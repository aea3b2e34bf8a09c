"""Generic CRUD for every collection of the document.

Implements, for each array-valued collection ``K``:
    GET    /K
    GET    /K/{id}
    POST   /K
    PUT    /K/{id}
    PATCH  /K/{id}
    DELETE /K/{id}

This router is included last so collection-specific routes win.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store
from mock_servers.hrm_mock.errors import NotFound

router = APIRouter(tags=["Collections"])


def _collection(store: DocumentStore, name: str) -> List[Dict[str, Any]]:
    if not store.has_collection(name):
        raise NotFound()
    return store.get_collection(name)


def _existing(store: DocumentStore, name: str, item_id: str) -> Dict[str, Any]:
    _collection(store, name)
    record = store.find(name, coerce_id(item_id))
    if record is None:
        raise NotFound()
    return record


def _merge(store: DocumentStore, name: str, item_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
    record = _existing(store, name, item_id)
    return store.merge(name, record["id"], {**body, "id": record["id"]})


@router.get("/{collection}")
async def list_records(
    collection: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    return Envelope.success("Récupération réussie", _collection(store, collection))


@router.get("/{collection}/{item_id}")
async def get_record(
    collection: str, item_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    return Envelope.success("Récupération réussie", _existing(store, collection, item_id))


@router.post("/{collection}", status_code=201)
async def create_record(
    collection: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    _collection(store, collection)
    record = store.insert(collection, dict(body or {}))
    return Envelope.success("Création réussie", record)


# PUT and PATCH share the same shallow merge.
@router.put("/{collection}/{item_id}")
async def replace_record(
    collection: str,
    item_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    record = _merge(store, collection, item_id, body or {})
    return Envelope.success("Mise à jour réussie", record)


@router.patch("/{collection}/{item_id}")
async def patch_record(
    collection: str,
    item_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    record = _merge(store, collection, item_id, body or {})
    return Envelope.success("Mise à jour partielle réussie", record)


@router.delete("/{collection}/{item_id}")
async def delete_record(
    collection: str, item_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    record = _existing(store, collection, item_id)
    removed = store.remove(collection, record["id"])
    return Envelope.success("Suppression réussie", removed)
