"""Leave balance counters.

Implements:
    GET  /conge-compteurs
    GET  /conge-compteurs/{id}
    GET  /conge-compteurs/employee/{employeeId}
    POST /conge-compteurs
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from hrm_core.schemas import Envelope, PaginatedEnvelope
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store, same_id
from mock_servers.hrm_mock.errors import NotFound
from mock_servers.hrm_mock.listing import paginate

router = APIRouter(prefix="/conge-compteurs", tags=["Conges"])


def _with_type(store: DocumentStore, counter: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **counter,
        "type_absence": store.find("absenceTypes", counter.get("type_absence_id")),
    }


def _with_employee(store: DocumentStore, counter: Dict[str, Any]) -> Dict[str, Any]:
    employee = store.find("hrEmployees", counter.get("employee_id"))
    row = _with_type(store, counter)
    row["employee"] = (
        {
            "id": employee.get("id"),
            "first_name": employee.get("firstName"),
            "last_name": employee.get("lastName"),
            "matricule": employee.get("matricule"),
        }
        if employee
        else None
    )
    return row


@router.get("")
async def list_counters(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    rows = store.get_collection("congeCompteurs")
    return paginate(
        rows,
        request.query_params,
        total=len(rows),
        message="Liste des compteurs de congés récupérée avec succès",
        decorate=lambda row: _with_employee(store, row),
    )


@router.get("/employee/{employee_id}")
async def employee_counters(employee_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    rows = store.where("congeCompteurs", lambda c: same_id(c.get("employee_id"), employee_id))
    return Envelope.success(
        "Compteurs de congés de l'employé récupérés avec succès",
        [_with_type(store, row) for row in rows],
    )


@router.get("/{counter_id}")
async def get_counter(counter_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    counter = store.find("congeCompteurs", coerce_id(counter_id))
    if counter is None:
        raise NotFound("Compteur de congés non trouvé")
    return Envelope.success("Compteur de congés récupéré avec succès", _with_type(store, counter))


@router.post("", status_code=201)
async def create_counter(
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or {}
    record = {**body, "id": body.get("id") or store.next_id()}
    store.insert("congeCompteurs", record)
    return Envelope.success("Compteur de congés créé avec succès", record)
