"""Salary advances.

Implements:
    GET    /avances
    GET    /avances/{id}
    POST   /avances
    PUT    /avances/{id}
    DELETE /avances/{id}
    POST   /avances/{id}/valider
    POST   /avances/{id}/refuse
    GET    /avances/employee/{id}/count-current-year

New advances start ``En_attente``. The yearly cap is read from the first
``parametreMaxGeneral`` row (``max_avances_par_an``) and counted per employee
on the year of ``date_demande``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, Response

from hrm_core.schemas import Envelope, PaginatedEnvelope
from mock_servers.hrm_mock.db import (
    DocumentStore,
    get_store,
    iso_now,
    parse_iso,
    same_id,
    utc_now,
)
from mock_servers.hrm_mock.errors import BadRequest
from mock_servers.hrm_mock.listing import paginate
from mock_servers.hrm_mock.models import ApprovalDecision
from mock_servers.hrm_mock.resources import require, transition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/avances", tags=["Avances"])

PENDING = "En_attente"
VALIDATED = "Valide"
REFUSED = "Refuse"

_MISSING = "Avance non trouvée"


# --- Joins (shared with loans) ---


def with_employee(store: DocumentStore, record: Dict[str, Any]) -> Dict[str, Any]:
    employee = store.find("hrEmployees", record.get("employe_id"))
    summary = None
    if employee is not None:
        full_name = f"{employee.get('firstName') or ''} {employee.get('lastName') or ''}"
        summary = {"matricule": employee.get("matricule"), "fullName": full_name.strip()}
    return {**record, "employee": summary}


def _user_summary(store: DocumentStore, user_id: Any) -> Optional[Dict[str, Any]]:
    user = store.find("users", user_id) if user_id else None
    if user is None:
        return None
    return {"id": user.get("id"), "fullName": user.get("full_name") or ""}


def with_users(store: DocumentStore, record: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the creating and validating users, when they are known users."""
    return {
        **record,
        "creer_par_user": _user_summary(store, record.get("creer_par")),
        "valide_par_user": _user_summary(store, record.get("valide_par")),
    }


# --- Yearly cap ---


def yearly_limit(store: DocumentStore) -> Optional[int]:
    rows = store.get_collection("parametreMaxGeneral")
    limit = rows[0].get("max_avances_par_an") if rows else None
    if isinstance(limit, bool) or not isinstance(limit, (int, float)):
        return None
    return limit


def count_for_year(store: DocumentStore, employee_id: Any, year: int) -> int:
    def counts(avance: Dict[str, Any]) -> bool:
        requested = parse_iso(avance.get("date_demande"))
        return same_id(avance.get("employe_id"), employee_id) and (
            requested is not None and requested.year == year
        )

    return len(store.where("avances", counts))


def _check_yearly_limit(store: DocumentStore, body: Dict[str, Any]) -> None:
    limit = yearly_limit(store)
    requested = parse_iso(body.get("date_demande"))
    if limit is None or not body.get("employe_id") or requested is None:
        return
    year = requested.year
    if count_for_year(store, body["employe_id"], year) >= limit:
        logger.info("Advance refused for employee %s: cap of %s reached", body["employe_id"], limit)
        raise BadRequest(f"Nombre maximum d’avances ({limit}) atteint pour l’année {year}")


# --- Routes ---


@router.get("")
async def list_avances(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    rows = store.get_collection("avances")
    return paginate(
        rows,
        request.query_params,
        total=len(rows),
        message="Liste des avances récupérée avec succès",
        decorate=lambda row: with_employee(store, row),
    )


@router.get("/employee/{employee_id}/count-current-year")
async def count_current_year(employee_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    year = utc_now().year
    return Envelope.success(
        "Récupération réussie",
        {"employeeId": employee_id, "year": year, "count": count_for_year(store, employee_id, year)},
    )


@router.get("/{avance_id}")
async def get_avance(avance_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    avance = require(store, "avances", avance_id, _MISSING)
    return Envelope.success("Avance récupérée", with_users(store, with_employee(store, avance)))


@router.post("", status_code=201)
async def create_avance(
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or {}
    _check_yearly_limit(store, body)
    stamp = iso_now()
    record = {
        **body,
        "id": store.next_id(),
        "statut": PENDING,
        "created_at": stamp,
        "updated_at": stamp,
    }
    store.insert("avances", record)
    return Envelope.success("Avance soumise", record)


@router.put("/{avance_id}")
async def update_avance(
    avance_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    avance = require(store, "avances", avance_id, _MISSING)
    patch = {**(body or {}), "id": avance["id"], "updated_at": iso_now()}
    return Envelope.success("Avance mise à jour", store.merge("avances", avance["id"], patch))


@router.delete("/{avance_id}", status_code=204)
async def delete_avance(avance_id: str, store: DocumentStore = Depends(get_store)) -> Response:
    avance = require(store, "avances", avance_id, _MISSING)
    store.remove("avances", avance["id"])
    return Response(status_code=204)


@router.post("/{avance_id}/valider")
async def validate_avance(
    avance_id: str,
    body: Optional[ApprovalDecision] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or ApprovalDecision()
    stamp = iso_now()
    updated = transition(
        store,
        "avances",
        avance_id,
        {
            "statut": VALIDATED,
            "valide_par": body.valide_par or "system",
            "date_validation": stamp,
            "updated_at": stamp,
        },
        _MISSING,
    )
    return Envelope.success("Avance validée", updated)


@router.post("/{avance_id}/refuse")
async def refuse_avance(
    avance_id: str,
    body: Optional[ApprovalDecision] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or ApprovalDecision()
    stamp = iso_now()
    updated = transition(
        store,
        "avances",
        avance_id,
        {
            "statut": REFUSED,
            "motif_refus": body.motif_refus or "",
            "valide_par": body.valide_par or "system",
            "date_validation": stamp,
            "updated_at": stamp,
        },
        _MISSING,
    )
    return Envelope.success("Avance refusée", updated)
