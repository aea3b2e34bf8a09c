"""Employment contracts and their lifecycle.

Implements:
    GET    /contracts
    GET    /contracts/{id}
    GET    /contracts/{id}/avenants
    POST   /contracts/{id}/validate
    POST   /contracts/{id}/generate
    POST   /contracts/{id}/upload-signed
    POST   /contracts/{id}/cancel
    DELETE /contracts/{id}

A contract's state lives in both ``status`` and ``statut``; either may be set
on seeded records, transitions always write both.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Request

from hrm_core.schemas import Envelope, PaginatedEnvelope
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store, iso_now, same_id
from mock_servers.hrm_mock.errors import BadRequest, NotFound
from mock_servers.hrm_mock.listing import paginate
from mock_servers.hrm_mock.models import CancelRequest, SignedDocumentUpload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["Contracts"])

DRAFT = "Brouillon"
ACTIVE = "Actif"
CANCELLED = "Annulé"

_LIST_PROJECTION: Tuple[str, ...] = ("id", "firstName", "lastName", "matricule", "email")
_DETAIL_PROJECTION = _LIST_PROJECTION + ("departmentId", "position")


def _status(contract: Dict[str, Any]) -> Optional[str]:
    return contract.get("status") or contract.get("statut")


def _contract(store: DocumentStore, raw_id: str) -> Dict[str, Any]:
    contract = store.find("contracts", coerce_id(raw_id))
    if contract is None:
        raise NotFound("Contrat introuvable")
    return contract


def enrich_contract(
    store: DocumentStore,
    contract: Dict[str, Any],
    projection: Tuple[str, ...] = _LIST_PROJECTION,
) -> Dict[str, Any]:
    """Attach the contract holder, matched on ``employee_id`` or ``employe_id``."""
    employee_id = contract.get("employee_id") or contract.get("employe_id")
    employee = store.find("hrEmployees", employee_id)
    if employee is not None:
        display = f"{employee.get('firstName')} {employee.get('lastName')}"
    else:
        display = "N/A"
    return {
        **contract,
        "employee_name": contract.get("employee_name") or display,
        "employee_matricule": contract.get("employee_matricule")
        or (employee.get("matricule") if employee else None),
        "employee": {k: employee.get(k) for k in projection} if employee else None,
    }


@router.get("")
async def list_contracts(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    contracts = store.get_collection("contracts")
    # Enriched before filtering so employee_name and friends are searchable.
    rows = [enrich_contract(store, c) for c in contracts]
    return paginate(
        rows,
        request.query_params,
        total=len(contracts),
        message="Liste des contrats récupérée avec succès",
        decorate=lambda row: {**row, "actions": 1},
    )


@router.get("/{contract_id}")
async def get_contract(contract_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    contract = _contract(store, contract_id)
    return Envelope.success(
        "Contrat récupéré avec succès",
        enrich_contract(store, contract, _DETAIL_PROJECTION),
    )


@router.get("/{contract_id}/avenants")
async def contract_avenants(contract_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    rows = store.where("avenants", lambda a: same_id(a.get("contract_id"), contract_id))
    return Envelope.success("Récupération réussie", rows)


@router.post("/{contract_id}/validate")
async def validate_contract(contract_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    contract = _contract(store, contract_id)
    if _status(contract) != DRAFT:
        raise BadRequest("Seuls les contrats en brouillon peuvent être validés")
    updated = store.merge(
        "contracts",
        contract["id"],
        {"status": ACTIVE, "statut": ACTIVE, "updated_at": iso_now()},
    )
    logger.info("Contract %s validated", contract["id"])
    return Envelope.success("Contrat validé avec succès", updated)


@router.post("/{contract_id}/generate")
async def generate_contract(contract_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    contract = _contract(store, contract_id)
    return Envelope.success(
        "PDF généré avec succès", {"url": f"/generated/contract-{contract['id']}.pdf"}
    )


@router.post("/{contract_id}/upload-signed")
async def upload_signed_contract(
    contract_id: str,
    body: Optional[SignedDocumentUpload] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    contract = _contract(store, contract_id)
    body = body or SignedDocumentUpload()
    record_id = contract["id"]
    signed = {
        "url": body.fileUrl or f"/uploads/contracts/{record_id}/signed.pdf",
        "name": body.fileName or f"contrat-signe-{record_id}.pdf",
        "uploaded_at": iso_now(),
    }
    updated = store.merge(
        "contracts",
        record_id,
        {"signed_document": signed, "status": ACTIVE, "statut": ACTIVE},
    )
    return Envelope.success("Contrat signé téléversé avec succès", updated)


@router.post("/{contract_id}/cancel")
async def cancel_contract(
    contract_id: str,
    body: Optional[CancelRequest] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    contract = _contract(store, contract_id)
    reason = (body.reason if body else None) or "Annulation via mock"
    updated = store.merge(
        "contracts",
        contract["id"],
        {
            "status": CANCELLED,
            "statut": CANCELLED,
            "cancelled_at": iso_now(),
            "cancellation_reason": reason,
        },
    )
    logger.info("Contract %s cancelled: %s", contract["id"], reason)
    return Envelope.success("Contrat annulé avec succès", updated)


@router.delete("/{contract_id}")
async def delete_contract(contract_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    contract = _contract(store, contract_id)
    if _status(contract) != DRAFT:
        raise BadRequest("Seuls les contrats en brouillon peuvent être supprimés")
    store.remove("contracts", contract["id"])
    return Envelope.success(f"Contrat #{contract['id']} supprimé")
