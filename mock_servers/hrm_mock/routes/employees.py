"""Employee directory, career history and movement types.

Implements:
    GET    /hrEmployees
    GET    /hrEmployees/simple-list
    GET    /hrEmployees/managers/simple-list
    GET    /hrEmployees/{id}/history
    POST   /hrEmployees/{id}/history
    DELETE /hrEmployees/{id}
    GET    /movement-types
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from hrm_core.schemas import Envelope, PaginatedEnvelope
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store, iso_now, now_ms, same_id
from mock_servers.hrm_mock.errors import NotFound
from mock_servers.hrm_mock.listing import paginate, sort_rows
from mock_servers.hrm_mock.models import HistoryEntryCreate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Employees"])

_MANAGER_TAGS = ("management", "manager")
_MANAGER_TITLES = ("manager", "gestion", "chef")


def _employee(store: DocumentStore, raw_id: str) -> Dict[str, Any]:
    employee = store.find("hrEmployees", coerce_id(raw_id))
    if employee is None:
        raise NotFound("Employé introuvable")
    return employee


def is_manager(employee: Dict[str, Any]) -> bool:
    """Management tag, or a manager-like word in one of the free-text titles."""
    tags = employee.get("tags")
    tags = [str(t).lower() for t in tags] if isinstance(tags, list) else []
    if any(word in tag for tag in tags for word in _MANAGER_TAGS):
        return True

    titles: List[Any] = []
    for key in ("position", "jobTitle", "notes"):
        value = employee.get(key)
        if isinstance(value, list):
            titles.extend(value)
        elif value:
            titles.append(value)
    experiences = employee.get("experiences")
    if isinstance(experiences, list):
        titles.extend(
            (ex.get("title") or "") if isinstance(ex, dict) else "" for ex in experiences
        )
    lowered = [str(t).lower() for t in titles]
    return any(word in title for title in lowered for word in _MANAGER_TITLES)


@router.get("/hrEmployees")
async def list_employees(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    rows = store.get_collection("hrEmployees")
    return paginate(
        rows,
        request.query_params,
        total=len(rows),
        message="Liste des employés récupérée avec succès",
        decorate=lambda row: {**row, "actions": 1},
    )


@router.get("/hrEmployees/simple-list")
async def employees_simple_list(store: DocumentStore = Depends(get_store)) -> Envelope:
    data = [
        {
            "id": e.get("id"),
            "firstName": e.get("firstName"),
            "lastName": e.get("lastName"),
            "matricule": e.get("matricule"),
        }
        for e in store.get_collection("hrEmployees")
    ]
    return Envelope.success("Récupération réussie", data)


@router.get("/hrEmployees/managers/simple-list")
async def managers_simple_list(store: DocumentStore = Depends(get_store)) -> Envelope:
    data = [
        {
            "id": e.get("id"),
            "firstName": e.get("firstName"),
            "lastName": e.get("lastName"),
            "matricule": e.get("matricule"),
            "email": e.get("email"),
        }
        for e in store.get_collection("hrEmployees")
        if is_manager(e)
    ]
    return Envelope.success("Récupération réussie", data)


@router.get("/hrEmployees/{employee_id}/history")
async def employee_history(
    employee_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    employee = _employee(store, employee_id)
    history = store.where(
        "employeeHistory", lambda h: same_id(h.get("employeeId"), employee["id"])
    )
    return Envelope.success("Récupération réussie", sort_rows(history, "createdAt", False))


@router.post("/hrEmployees/{employee_id}/history")
async def add_history_entry(
    employee_id: str,
    body: Optional[HistoryEntryCreate] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    employee = _employee(store, employee_id)
    body = body or HistoryEntryCreate()
    stamp = iso_now()
    entry = {
        "id": f"eh-{employee['id']}-{now_ms()}",
        "employeeId": employee["id"],
        "type": body.type or "custom",
        "title": body.title or "Mouvement",
        "description": body.description or None,
        "oldValue": body.oldValue or None,
        "newValue": body.newValue or None,
        "ref": body.ref or None,
        "createdAt": body.createdAt or stamp,
        "updatedAt": stamp,
    }
    store.insert("employeeHistory", entry)
    return Envelope.success("Mouvement enregistré", entry)


@router.delete("/hrEmployees/{employee_id}")
async def delete_employee(
    employee_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    employee = _employee(store, employee_id)
    store.remove("hrEmployees", employee["id"])
    logger.info("Employee %s deleted", employee["id"])
    return Envelope.success(f"Employé #{employee['id']} supprimé")


@router.get("/movement-types")
async def movement_types(store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", store.get_collection("movementTypes"))
