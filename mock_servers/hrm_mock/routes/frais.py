"""Expense reports (notes de frais) and their validation workflow.

Implements:
    GET    /api/admin/frais
    GET    /api/admin/frais/{id}
    POST   /api/admin/frais
    PUT    /api/admin/frais/{id}
    DELETE /api/admin/frais/{id}
    POST   /api/admin/frais/{id}/submit
    POST   /api/admin/frais/{id}/validate

A note carries its ``lines`` inline or, for older records, through the
``lignesFrais`` collection (``noteId``). Totals are recomputed on every read
and write from the category ceilings and kilometre rates in
``data/frais_categories.json``; amounts are always in MAD.

Workflow:
    draft | needs_complement | refused --submit--> submitted
    submitted --approve_total--> approved
    submitted --approve_partial--> approved_partial
    submitted --refuse--> refused
    submitted --request_complement--> needs_complement
"""

from __future__ import annotations

import copy
import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import APIRouter, Body, Depends, Request

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
from mock_servers.hrm_mock.listing import first_param, page_bounds, sort_rows
from mock_servers.hrm_mock.models import ExpenseDecision
from mock_servers.hrm_mock.resources import require

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/frais", tags=["Frais"])

META_PATH = Path(__file__).parent.parent / "data" / "frais_categories.json"

DRAFT = "draft"
SUBMITTED = "submitted"
APPROVED = "approved"
APPROVED_PARTIAL = "approved_partial"
REFUSED = "refused"
NEEDS_COMPLEMENT = "needs_complement"

SUBMITTABLE = frozenset({DRAFT, NEEDS_COMPLEMENT, REFUSED})
# Validation actions allowed per current status.
ALLOWED_ACTIONS: Mapping[str, Tuple[str, ...]] = {
    SUBMITTED: ("approve_total", "approve_partial", "refuse", "request_complement"),
}

_MISSING = "Note de frais introuvable"
_ACTOR = "system"


@lru_cache(maxsize=1)
def load_meta() -> Dict[str, Any]:
    with open(META_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def _amount(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize(value: Any) -> str:
    """Alphanumerics only, lower-cased; used for matricule and search matching."""
    return re.sub(r"[^A-Za-z0-9]", "", str(value or "")).lower()


# --- Totals and numbering ---


def _lines(note: Dict[str, Any]) -> List[Dict[str, Any]]:
    lines = note.get("lines")
    return [line for line in lines if isinstance(line, dict)] if isinstance(lines, list) else []


def compute_totals(note: Dict[str, Any], meta: Mapping[str, Any]) -> Dict[str, Any]:
    """Cap each line at its category ceiling and set ``note["total"]``."""
    total = 0.0
    lines = []
    for line in _lines(note):
        amount = _amount(line.get("amount"))
        if line.get("kilometers") and line.get("vehicleType"):
            rate = next(
                (k for k in meta.get("kilometerRates", []) if k.get("vehicle") == line["vehicleType"]),
                None,
            )
            if rate is not None:
                amount += rate["ratePerKm"] * _amount(line["kilometers"])
        category = next(
            (c for c in meta.get("categories", []) if c.get("name") == line.get("category")),
            None,
        )
        if category is not None and amount > category["ceiling"]:
            line["approvedAmount"] = category["ceiling"]
        elif not _is_number(line.get("approvedAmount")):
            line["approvedAmount"] = amount
        total += line["approvedAmount"] or amount
        lines.append(line)
    note["lines"] = lines
    note["total"] = round(total, 2)
    return note


def next_number(store: DocumentStore, matricule: str, year: int) -> str:
    """``NDF-<year>-<matricule>-NNN``, one sequence per employee and year."""
    prefix = f"NDF-{year}-{matricule}-"
    sequences = []
    for note in store.get_collection("notesFrais"):
        number = str(note.get("number") or "")
        if note.get("matricule") != matricule or not number.startswith(prefix):
            continue
        try:
            sequences.append(int(number[len(prefix):]))
        except ValueError:
            continue
    return f"{prefix}{(max(sequences) if sequences else 0) + 1:03d}"


# --- Joins ---


def with_lines(store: DocumentStore, note: Dict[str, Any]) -> Dict[str, Any]:
    """Working copy of ``note`` with its lines attached."""
    working = copy.deepcopy(note)
    if not _lines(working):
        rows = store.where("lignesFrais", lambda l: same_id(l.get("noteId"), note.get("id")))
        if rows:
            working["lines"] = copy.deepcopy(rows)
    return working


def resolve_employee(store: DocumentStore, note: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """By ``employeeId``, then the embedded employee id, then matricule."""
    if note.get("employeeId") is not None:
        employee = store.find("hrEmployees", note["employeeId"])
        if employee is not None:
            return employee
    embedded = note.get("employee") if isinstance(note.get("employee"), dict) else {}
    if embedded.get("id") is not None:
        employee = store.find("hrEmployees", embedded["id"])
        if employee is not None:
            return employee
    matricule = note.get("matricule") or embedded.get("matricule")
    if matricule:
        wanted = normalize(matricule)
        for employee in store.get_collection("hrEmployees"):
            if normalize(employee.get("matricule")) == wanted:
                return employee
    return None


def _listing_row(store: DocumentStore, note: Dict[str, Any], meta: Mapping[str, Any]) -> Dict[str, Any]:
    row = compute_totals(with_lines(store, note), meta)
    employee = resolve_employee(store, row)
    row["employee"] = (
        {
            "id": employee.get("id"),
            "firstName": employee.get("firstName"),
            "lastName": employee.get("lastName"),
            "matricule": employee.get("matricule"),
            "departmentId": employee.get("departmentId"),
        }
        if employee
        else None
    )
    row["linesCount"] = len(row.get("lines") or [])
    return row


# --- Listing ---


def filter_notes(rows: List[Dict[str, Any]], params: Mapping[str, str]) -> List[Dict[str, Any]]:
    status = first_param(params, "status", "statut")
    employee_id = first_param(params, "employeeId", "employee", "employe")
    matricule = params.get("matricule")
    period_start = parse_iso(first_param(params, "from", "periodStart", "startDate"))
    period_end = parse_iso(first_param(params, "to", "periodEnd", "endDate"))
    query = first_param(params, "q", "search", "search[value]")

    if status:
        rows = [n for n in rows if str(n.get("status")).lower() == status.lower()]
    if employee_id:
        rows = [
            n
            for n in rows
            if str(n.get("employeeId")) == employee_id
            or (n.get("employee") and str(n["employee"].get("id")) == employee_id)
        ]
    if matricule:
        wanted = normalize(matricule)
        rows = [
            n
            for n in rows
            if normalize(n.get("matricule")) == wanted
            or (n.get("employee") and normalize(n["employee"].get("matricule")) == wanted)
        ]
    if period_start or period_end:
        kept = []
        for note in rows:
            starts = parse_iso(note.get("startDate"))
            ends = parse_iso(note.get("endDate"))
            if period_start and ends and ends < period_start:
                continue
            if period_end and starts and starts > period_end:
                continue
            kept.append(note)
        rows = kept
    if query:
        needle = normalize(query)

        def haystack(note: Dict[str, Any]) -> str:
            employee = note.get("employee") or {}
            parts = (
                note.get("number"),
                note.get("subject"),
                note.get("status"),
                note.get("matricule"),
                employee.get("firstName"),
                employee.get("lastName"),
            )
            return " ".join(normalize(p) for p in parts if p)

        rows = [n for n in rows if needle in haystack(n)]
    return rows


def sorting(params: Mapping[str, str]) -> Tuple[Optional[str], bool]:
    """Sort key and direction, from ``sortBy``/``orderBy`` or DataTables ``order[0]``.

    The direction defaults to descending.
    """
    sort_by = params.get("sortBy") or params.get("orderBy")
    descending = (params.get("sortDir") or params.get("orderDir") or "desc").lower() == "desc"
    column = params.get("order[0][column]")
    if not sort_by and column is not None:
        sort_by = params.get(f"columns[{column}][data]") or params.get(f"columns[{column}][name]")
    if params.get("order[0][dir]"):
        descending = params["order[0][dir]"] == "desc"
    return sort_by, descending


def _newest_first(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    def key(note: Dict[str, Any]) -> str:
        return str(note.get("createdAt") or note.get("id"))

    return sorted(rows, key=key, reverse=True)


@router.get("")
async def list_notes(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    params = request.query_params
    meta = load_meta()
    notes = store.get_collection("notesFrais")
    rows = filter_notes([_listing_row(store, n, meta) for n in notes], params)

    sort_by, descending = sorting(params)
    rows = sort_rows(rows, sort_by, descending) if sort_by else _newest_first(rows)
    start, length = page_bounds(params)
    return PaginatedEnvelope(
        status="success",
        message="Liste des notes de frais récupérée avec succès",
        data=rows[start:start + length],
        recordsTotal=len(notes),
        recordsFiltered=len(rows),
    )


# --- Single notes ---


def _save(store: DocumentStore, existing: Dict[str, Any], note: Dict[str, Any]) -> Dict[str, Any]:
    existing.clear()
    existing.update(note)
    store.write()
    return existing


@router.get("/{note_id}")
async def get_note(note_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    note = require(store, "notesFrais", note_id, _MISSING)
    return Envelope.success("Note de frais récupérée", compute_totals(with_lines(store, note), load_meta()))


@router.post("", status_code=201)
async def create_note(
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    note = dict(body or {})
    now = utc_now()
    stamp = iso_now()
    note["status"] = note.get("status") or DRAFT
    employee = store.find("hrEmployees", note.get("employeeId"))
    matricule = note.get("matricule") or (employee.get("matricule") if employee else None) or "UNKNOWN"
    note["number"] = next_number(store, matricule, now.year)
    note["createdAt"] = stamp
    note["updatedAt"] = stamp
    compute_totals(note, load_meta())
    store.insert("notesFrais", note)
    return Envelope.success("Note de frais créée", note)


@router.put("/{note_id}")
async def update_note(
    note_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    existing = require(store, "notesFrais", note_id, _MISSING)
    note = {**copy.deepcopy(existing), **(body or {}), "id": existing["id"], "updatedAt": iso_now()}
    compute_totals(note, load_meta())
    return Envelope.success("Note de frais mise à jour", _save(store, existing, note))


@router.delete("/{note_id}")
async def delete_note(note_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    existing = require(store, "notesFrais", note_id, _MISSING)
    store.remove("notesFrais", existing["id"])
    store.remove_where("lignesFrais", lambda l: same_id(l.get("noteId"), existing["id"]))
    return Envelope.success("Note de frais supprimée")


# --- Workflow ---


@router.post("/{note_id}/submit")
async def submit_note(note_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    existing = require(store, "notesFrais", note_id, _MISSING)
    status = existing.get("status") or DRAFT
    if status not in SUBMITTABLE:
        raise BadRequest(f"Impossible de soumettre depuis le statut '{status}'")

    note = with_lines(store, existing)
    note["status"] = SUBMITTED
    note["updatedAt"] = iso_now()
    note["history"] = note.get("history") if isinstance(note.get("history"), list) else []
    note["history"].append({"at": note["updatedAt"], "action": "SUBMITTED", "by": _ACTOR})
    compute_totals(note, load_meta())
    logger.info("Expense report %s submitted", existing["id"])
    return Envelope.success("Note de frais soumise", _save(store, existing, note))


def _approve_partial(note: Dict[str, Any], decision: ExpenseDecision) -> None:
    adjustments = {str(a.id): a for a in decision.adjustments}
    lines = []
    for line in _lines(note):
        adjustment = adjustments.get(str(line.get("id")))
        if adjustment is not None and _is_number(adjustment.approvedAmount):
            approved = adjustment.approvedAmount
        else:
            fallback = line.get("approvedAmount")
            approved = _amount(fallback if fallback is not None else line.get("amount"))
        comment = (adjustment.managerComment if adjustment else None) or line.get("managerComment")
        lines.append({**line, "approvedAmount": approved, "managerComment": comment})
    note["lines"] = lines


def _sync_lines(store: DocumentStore, note: Dict[str, Any]) -> None:
    """Copy approved amounts back to ``lignesFrais`` rows of the note."""
    for line in _lines(note):
        for row in store.get_collection("lignesFrais"):
            if same_id(row.get("noteId"), note["id"]) and same_id(row.get("id"), line.get("id")):
                row["approvedAmount"] = line.get("approvedAmount")
                row["managerComment"] = line.get("managerComment")
    store.write()


@router.post("/{note_id}/validate")
async def validate_note(
    note_id: str,
    body: Optional[ExpenseDecision] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    decision = body or ExpenseDecision()
    existing = require(store, "notesFrais", note_id, _MISSING)
    status = existing.get("status") or DRAFT
    action = decision.action
    if action not in ALLOWED_ACTIONS.get(status, ()):
        raise BadRequest(f"Action '{action}' non permise depuis le statut '{status}'")

    note = with_lines(store, existing)
    note["history"] = note.get("history") if isinstance(note.get("history"), list) else []
    stamp = iso_now()

    if action == "approve_total":
        note["lines"] = [
            {**line, "approvedAmount": _amount(line.get("amount"))} for line in _lines(note)
        ]
        note["status"] = APPROVED
        note["history"].append({"at": stamp, "action": "APPROVED", "by": _ACTOR})
    elif action == "approve_partial":
        _approve_partial(note, decision)
        note["status"] = APPROVED_PARTIAL
        note["history"].append({"at": stamp, "action": "APPROVED_PARTIAL", "by": _ACTOR})
    elif action == "refuse":
        reason = (decision.reason or "").strip()
        if not reason:
            raise BadRequest("La raison du refus est requise")
        note["refuseReason"] = reason
        note["status"] = REFUSED
        note["history"].append({"at": stamp, "action": "REFUSED", "by": _ACTOR, "comment": reason})
    else:
        comment = (decision.comment or "").strip()
        if not comment:
            raise BadRequest("Le commentaire est requis pour la demande de complément")
        note["managerComment"] = comment
        note["status"] = NEEDS_COMPLEMENT
        note["history"].append({"at": stamp, "action": "NEEDS_COMPLEMENT", "by": _ACTOR, "comment": comment})

    note["updatedAt"] = stamp
    compute_totals(note, load_meta())
    saved = _save(store, existing, note)
    _sync_lines(store, saved)
    logger.info("Expense report %s: %s", saved["id"], action)
    return Envelope.success("Note de frais traitée", saved)
