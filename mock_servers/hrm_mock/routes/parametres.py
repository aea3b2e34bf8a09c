"""Maximum amounts per request type (advances, loans, ...).

Implements:
    GET    /parametre-max-general
    GET    /parametre-max-general/{id}
    POST   /parametre-max-general
    PUT    /parametre-max-general/{id}
    PATCH  /parametre-max-general/{id}
    DELETE /parametre-max-general/{id}

Rows flagged ``is_required`` can be neither modified nor deleted.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, get_store
from mock_servers.hrm_mock.resources import FieldSpec, ResourceDescriptor, ResourceHandler

router = APIRouter(prefix="/parametre-max-general", tags=["Parametres"])

MAX_GENERAL = ResourceDescriptor(
    name="parametre-max-general",
    collection="parametreMaxGeneral",
    fields=[
        FieldSpec(name="type", required=True),
        FieldSpec(name="max", kind="number", required=True, invalid_message="Valeur maximale invalide"),
        FieldSpec(name="description"),
        FieldSpec(name="is_required", kind="bool"),
    ],
    required_message="Type et valeur maximale requis",
    unique_field="type",
    unique_message="Type déjà existant",
    guard_required_flag=True,
)


def _handler(store: DocumentStore) -> ResourceHandler:
    return ResourceHandler(MAX_GENERAL, store)


@router.get("")
async def list_parametres(store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", _handler(store).list_all())


@router.get("/{item_id}")
async def get_parametre(item_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", _handler(store).show(item_id))


@router.post("", status_code=201)
async def create_parametre(
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    return Envelope.success("Création réussie", _handler(store).create(body or {}))


@router.put("/{item_id}")
@router.patch("/{item_id}")
async def update_parametre(
    item_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    return Envelope.success("Mise à jour réussie", _handler(store).update(item_id, body or {}))


@router.delete("/{item_id}")
async def delete_parametre(item_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Suppression réussie", _handler(store).delete(item_id))
