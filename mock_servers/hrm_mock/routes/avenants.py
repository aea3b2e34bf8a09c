"""Contract amendments.

Implements:
    GET    /avenants
    GET    /avenants/{id}
    POST   /avenants
    PUT    /avenants/{id}
    DELETE /avenants/{id}
    POST   /avenants/{id}/generate-pdf
    POST   /avenants/{id}/upload-signed
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from hrm_core.schemas import Envelope, PaginatedEnvelope
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store, iso_now, now_ms
from mock_servers.hrm_mock.errors import NotFound
from mock_servers.hrm_mock.listing import paginate
from mock_servers.hrm_mock.models import SignedDocumentUpload

router = APIRouter(prefix="/avenants", tags=["Avenants"])


def _avenant(store: DocumentStore, raw_id: str) -> Dict[str, Any]:
    avenant = store.find("avenants", coerce_id(raw_id))
    if avenant is None:
        raise NotFound("Avenant introuvable")
    return avenant


@router.get("")
async def list_avenants(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    rows = store.get_collection("avenants")
    return paginate(
        rows,
        request.query_params,
        total=len(rows),
        message="Liste des avenants récupérée avec succès",
    )


@router.get("/{avenant_id}")
async def get_avenant(avenant_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", _avenant(store, avenant_id))


@router.post("", status_code=201)
async def create_avenant(
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or {}
    record = {**body, "id": body.get("id") or f"AVN-{now_ms()}"}
    store.insert("avenants", record)
    return Envelope.success("Création réussie", record)


@router.put("/{avenant_id}")
async def update_avenant(
    avenant_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    avenant = _avenant(store, avenant_id)
    updated = store.merge("avenants", avenant["id"], {**(body or {}), "id": avenant["id"]})
    return Envelope.success("Mise à jour réussie", updated)


@router.delete("/{avenant_id}")
async def delete_avenant(avenant_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    avenant = _avenant(store, avenant_id)
    store.remove("avenants", avenant["id"])
    return Envelope.success("Suppression réussie")


@router.post("/{avenant_id}/generate-pdf")
async def generate_avenant_pdf(avenant_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    avenant = _avenant(store, avenant_id)
    document_url = f"/uploads/avenants/{avenant['id']}/generated.pdf"
    store.merge("avenants", avenant["id"], {"document_url": document_url})
    return Envelope.success("PDF généré", {"document_url": document_url})


@router.post("/{avenant_id}/upload-signed")
async def upload_signed_avenant(
    avenant_id: str,
    body: Optional[SignedDocumentUpload] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    avenant = _avenant(store, avenant_id)
    body = body or SignedDocumentUpload()
    signed = {
        "url": body.fileUrl or f"/uploads/avenants/{avenant['id']}/signed.pdf",
        "name": body.fileName or f"avenant-signe-{avenant['id']}.pdf",
        "uploaded_at": iso_now(),
    }
    store.merge("avenants", avenant["id"], {"signed_document": signed})
    return Envelope.success("Avenant signé téléversé", {"signed_document": signed})
