"""Employee loans.

Implements:
    GET    /prets
    GET    /prets/{id}
    POST   /prets
    PUT    /prets/{id}
    DELETE /prets/{id}
    POST   /prets/{id}/valider
    POST   /prets/{id}/refuse
    POST   /prets/{id}/demarrer
    POST   /prets/{id}/solde

Lifecycle: ``En attente`` -> ``Validé`` or ``Refusé``; ``En cours`` once
repayment starts; ``Soldé`` when paid off. The monthly instalment is derived
from amount, duration and annual rate unless the client sends one.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, Response

from hrm_core.schemas import Envelope, PaginatedEnvelope
from mock_servers.hrm_mock.db import DocumentStore, get_store, iso_now, parse_iso
from mock_servers.hrm_mock.errors import BadRequest
from mock_servers.hrm_mock.listing import paginate
from mock_servers.hrm_mock.models import ApprovalDecision, LoanStart
from mock_servers.hrm_mock.resources import require, transition
from mock_servers.hrm_mock.routes.avances import with_employee, with_users

router = APIRouter(prefix="/prets", tags=["Prets"])

PENDING = "En attente"
VALIDATED = "Validé"
REFUSED = "Refusé"
REPAYING = "En cours"
SETTLED = "Soldé"

_MISSING = "Prêt non trouvé"


def _number(value: Any) -> float:
    """Lenient numeric read: anything unparseable counts as 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def _round(value: float) -> int:
    # Halves round up.
    return math.floor(value + 0.5)


def monthly_payment(amount: Any, months: Any, annual_rate: Any) -> int:
    """Annuity instalment ``M * r / (1 - (1 + r) ** -n)``, rate in percent per year."""
    principal = _number(amount)
    count = _number(months) or 1
    rate = _number(annual_rate)
    if principal <= 0 or count <= 0:
        return 0
    monthly_rate = rate / 100 / 12 if rate > 0 else 0
    if monthly_rate == 0:
        return _round(principal / count)
    return _round(principal * (monthly_rate / (1 - (1 + monthly_rate) ** -count)))


def add_months(start: date, months: int) -> date:
    """Calendar month shift; a day past the month's end rolls into the next one."""
    index = start.month - 1 + months
    first = date(start.year + index // 12, index % 12 + 1, 1)
    return first + timedelta(days=start.day - 1)


def _present(value: Any) -> bool:
    return value is not None


@router.get("")
async def list_prets(
    request: Request, store: DocumentStore = Depends(get_store)
) -> PaginatedEnvelope:
    rows = store.get_collection("prets")
    return paginate(
        rows,
        request.query_params,
        total=len(rows),
        message="Liste des prêts récupérée avec succès",
        decorate=lambda row: with_employee(store, row),
    )


@router.get("/{pret_id}")
async def get_pret(pret_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    pret = require(store, "prets", pret_id, _MISSING)
    return Envelope.success("Prêt récupéré", with_users(store, with_employee(store, pret)))


@router.post("", status_code=201)
async def create_pret(
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or {}
    sent_payment = _number(body.get("montant_mensualite"))
    if sent_payment > 0:
        payment: float = sent_payment
    else:
        payment = monthly_payment(body.get("montant_pret"), body.get("duree_mois"), body.get("taux_interet"))
    repaid = body["montant_rembourse"] if _present(body.get("montant_rembourse")) else 0
    remaining = body.get("montant_restant")
    if not _present(remaining):
        remaining = max(0, _number(body.get("montant_pret")) - _number(body.get("montant_rembourse")))

    stamp = iso_now()
    record = {
        **body,
        "id": store.next_id(),
        "statut": PENDING,
        "montant_mensualite": payment,
        "montant_rembourse": repaid,
        "montant_restant": remaining,
        "created_at": stamp,
        "updated_at": stamp,
    }
    store.insert("prets", record)
    return Envelope.success("Prêt créé", record)


@router.put("/{pret_id}")
async def update_pret(
    pret_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    pret = require(store, "prets", pret_id, _MISSING)
    body = body or {}

    def current(key: str) -> Any:
        return body[key] if _present(body.get(key)) else pret.get(key)

    if "montant_mensualite" in body:
        payment: float = _number(body["montant_mensualite"])
    else:
        payment = monthly_payment(current("montant_pret"), current("duree_mois"), current("taux_interet"))
    patch = {
        **body,
        "id": pret["id"],
        "montant_mensualite": payment,
        "updated_at": iso_now(),
    }
    return Envelope.success("Prêt mis à jour", store.merge("prets", pret["id"], patch))


@router.delete("/{pret_id}", status_code=204)
async def delete_pret(pret_id: str, store: DocumentStore = Depends(get_store)) -> Response:
    pret = require(store, "prets", pret_id, _MISSING)
    store.remove("prets", pret["id"])
    return Response(status_code=204)


@router.post("/{pret_id}/valider")
async def validate_pret(
    pret_id: str,
    body: Optional[ApprovalDecision] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or ApprovalDecision()
    stamp = iso_now()
    updated = transition(
        store,
        "prets",
        pret_id,
        {
            "statut": VALIDATED,
            "valide_par": body.valide_par or "system",
            "date_validation": stamp,
            "updated_at": stamp,
        },
        _MISSING,
    )
    return Envelope.success("Prêt validé", updated)


@router.post("/{pret_id}/refuse")
async def refuse_pret(
    pret_id: str,
    body: Optional[ApprovalDecision] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or ApprovalDecision()
    stamp = iso_now()
    updated = transition(
        store,
        "prets",
        pret_id,
        {
            "statut": REFUSED,
            "motif_refus": body.motif_refus or "",
            "valide_par": body.valide_par or "system",
            "date_validation": stamp,
            "updated_at": stamp,
        },
        _MISSING,
    )
    return Envelope.success("Prêt refusé", updated)


@router.post("/{pret_id}/demarrer")
async def start_repayment(
    pret_id: str,
    body: Optional[LoanStart] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    pret = require(store, "prets", pret_id, _MISSING)
    start = (
        (body.date_debut_remboursement if body else None)
        or pret.get("date_debut_remboursement")
        or iso_now()[:10]
    )
    parsed = parse_iso(start)
    if parsed is None:
        raise BadRequest("Date de début de remboursement invalide")
    end = add_months(parsed.date(), int(_number(pret.get("duree_mois"))))
    updated = transition(
        store,
        "prets",
        pret["id"],
        {
            "statut": REPAYING,
            "date_debut_remboursement": start,
            "date_fin_prevue": end.isoformat(),
            "updated_at": iso_now(),
        },
        _MISSING,
    )
    return Envelope.success("Remboursement démarré", updated)


@router.post("/{pret_id}/solde")
async def settle_pret(pret_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    pret = require(store, "prets", pret_id, _MISSING)
    updated = transition(
        store,
        "prets",
        pret["id"],
        {
            "statut": SETTLED,
            "montant_rembourse": _number(pret.get("montant_pret")),
            "montant_restant": 0,
            "updated_at": iso_now(),
        },
        _MISSING,
    )
    return Envelope.success("Prêt soldé", updated)
