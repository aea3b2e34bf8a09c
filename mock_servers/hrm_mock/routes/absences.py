"""Absences and absence types.

Implements:
    GET   /absence-types
    GET   /absence-types/simple-list
    GET   /absences
    PATCH /absences/{id}/cancel
    PATCH /absences/{id}/validate
    PATCH /absences/{id}/close

Show, create, update and delete of single absences go through the generic
collection router.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from fastapi import APIRouter, Depends, Request

from hrm_core.schemas import Envelope, PaginatedEnvelope
from mock_servers.hrm_mock.db import DocumentStore, get_store, iso_now, parse_iso
from mock_servers.hrm_mock.listing import first_param, page_params, paginate
from mock_servers.hrm_mock.resources import transition

router = APIRouter(tags=["Absences"])

CANCELLED = "annulee"
VALIDATED = "validee"
CLOSED = "cloture"

_MISSING = "Absence introuvable"


def _order(absence_type: Dict[str, Any]) -> float:
    try:
        return float(absence_type.get("ordre") or 0)
    except (TypeError, ValueError):
        return 0


def _ordered_types(store: DocumentStore) -> List[Dict[str, Any]]:
    return sorted(store.get_collection("absenceTypes"), key=_order)


def filter_absences(
    rows: List[Dict[str, Any]], params: Mapping[str, str]
) -> List[Dict[str, Any]]:
    """Named filters; the period filter keeps absences overlapping [from, to]."""
    employee_id = first_param(params, "employeeId", "employee", "employe")
    type_id = first_param(params, "type", "type_absence_id")
    status = first_param(params, "status", "statut")
    period_start = parse_iso(first_param(params, "from", "periodStart", "startDate"))
    period_end = parse_iso(first_param(params, "to", "periodEnd", "endDate"))

    if employee_id:
        rows = [a for a in rows if str(a.get("employeeId")) == employee_id]
    if type_id:
        rows = [a for a in rows if str(a.get("type_absence_id")) == type_id]
    if status:
        rows = [a for a in rows if str(a.get("statut")).lower() == status.lower()]
    if period_start or period_end:
        kept = []
        for absence in rows:
            starts = parse_iso(absence.get("date_debut"))
            ends = parse_iso(absence.get("date_fin"))
            if period_start and ends and ends < period_start:
                continue
            if period_end and starts and starts > period_end:
                continue
            kept.append(absence)
        rows = kept
    return rows


def _enrich(store: DocumentStore, absence: Dict[str, Any]) -> Dict[str, Any]:
    employee = store.find("hrEmployees", absence.get("employeeId"))
    return {
        **absence,
        "type_absence": store.find("absenceTypes", absence.get("type_absence_id")),
        "employee": {
            "id": employee.get("id"),
            "firstName": employee.get("firstName"),
            "lastName": employee.get("lastName"),
            "matricule": employee.get("matricule"),
        }
        if employee
        else None,
    }


@router.get("/absence-types/simple-list")
async def absence_types_simple_list(store: DocumentStore = Depends(get_store)) -> Envelope:
    data = [
        {"id": t.get("id"), "code": t.get("code"), "libelle": t.get("libelle")}
        for t in _ordered_types(store)
        if t.get("actif") is not False
    ]
    return Envelope.success("Récupération réussie", data)


@router.get("/absence-types")
async def list_absence_types(store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", _ordered_types(store))


@router.get("/absences")
async def list_absences(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    absences = store.get_collection("absences")
    return paginate(
        filter_absences(list(absences), request.query_params),
        page_params(request.query_params),
        total=len(absences),
        message="Liste des absences récupérée avec succès",
        decorate=lambda row: _enrich(store, row),
    )


def _set_status(store: DocumentStore, absence_id: str, status: str) -> Dict[str, Any]:
    return transition(
        store,
        "absences",
        absence_id,
        {"statut": status, "updatedAt": iso_now()},
        _MISSING,
    )


@router.patch("/absences/{absence_id}/cancel")
async def cancel_absence(absence_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Absence annulée", _set_status(store, absence_id, CANCELLED))


@router.patch("/absences/{absence_id}/validate")
async def validate_absence(absence_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Absence validée", _set_status(store, absence_id, VALIDATED))


@router.patch("/absences/{absence_id}/close")
async def close_absence(absence_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Absence clôturée", _set_status(store, absence_id, CLOSED))
