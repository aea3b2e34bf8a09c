"""Job-offer broadcast channels.

Implements:
    GET    /canaux/getAll
    POST   /canaux/create
    DELETE /canaux/delete/{id}
"""

from __future__ import annotations

import re
from typing import Optional

from fastapi import APIRouter, Depends

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store, iso_now
from mock_servers.hrm_mock.errors import NotFound
from mock_servers.hrm_mock.models import CanalCreate

router = APIRouter(prefix="/canaux", tags=["Canaux"])

COLLECTION = "CanauxDiffusion"


def code_from_libelle(libelle: Optional[str]) -> Optional[str]:
    """``"Site carrière"`` -> ``"SITE_CARRIÈRE"``."""
    if libelle is None:
        return None
    return re.sub(r"\s", "_", libelle.upper())


def _next_canal_id(store: DocumentStore) -> int:
    ids = [c["id"] for c in store.get_collection(COLLECTION) if isinstance(c.get("id"), int)]
    return max(ids) + 1 if ids else 1


@router.get("/getAll")
async def list_canaux(store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", store.get_collection(COLLECTION))


@router.post("/create", status_code=201)
async def create_canal(
    body: Optional[CanalCreate] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or CanalCreate()
    canal = {
        "id": _next_canal_id(store),
        "code": body.code or code_from_libelle(body.libelle),
        "libelle": body.libelle,
        "createdAt": iso_now(),
    }
    store.insert(COLLECTION, canal)
    return Envelope.success("Canal créé avec succès", canal)


@router.delete("/delete/{canal_id}")
async def delete_canal(canal_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    canal = store.find(COLLECTION, coerce_id(canal_id))
    if canal is None:
        raise NotFound("Canal introuvable")
    store.remove(COLLECTION, canal["id"])
    return Envelope.success("Canal supprimé avec succès")
