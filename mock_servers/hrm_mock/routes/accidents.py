"""Work accident files (accidents du travail) and their CNSS follow-up.

Implements:
    GET    /accidents-travail
    GET    /accidents-travail/statistiques
    GET    /accidents-travail/{id}
    POST   /accidents-travail
    PUT    /accidents-travail/{id}
    PATCH  /accidents-travail/{id}/declarer-cnss
    PATCH  /accidents-travail/{id}/decision-cnss
    PATCH  /accidents-travail/{id}/cloturer
    DELETE /accidents-travail/{id}

Every change appends an entry to the file's ``historique``. A declaration
made within 48 hours of the accident is flagged ``delaiDeclarationRespect``.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from fastapi import APIRouter, Body, Depends, Request

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, get_store, iso_now, parse_iso, utc_now
from mock_servers.hrm_mock.errors import BadRequest
from mock_servers.hrm_mock.models import AccidentActor, CnssDecision
from mock_servers.hrm_mock.resources import require

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accidents-travail", tags=["Accidents"])

DRAFT = "Brouillon"
DECLARED = "Déclaré"
SENT_TO_CNSS = "Transmis CNSS"
UNDER_REVIEW = "En instruction"
ACCEPTED = "Accepté"
REFUSED = "Refusé"
CLOSED = "Clos"

DECLARATION_DEADLINE_HOURS = 48
DEFAULT_ACTOR = "RH Manager"

_MISSING = "Accident non trouvé"

_EMPTY_CNSS_FOLLOW_UP = {
    "dateEnvoi": None,
    "numeroRecepisse": None,
    "decision": None,
    "tauxIPP": None,
    "dateDecision": None,
    "montantIndemnite": None,
}
_EMPTY_PAYROLL_IMPACT = {
    "indemnitesJournalieres": 0,
    "joursIndemnises": 0,
    "priseEnCharge": None,
    "impactBulletin": False,
    "montantDeduction": 0,
}


def _stoppage(accident: Dict[str, Any]) -> Dict[str, Any]:
    stoppage = accident.get("arretTravail")
    return stoppage if isinstance(stoppage, dict) else {}


def _occurred(accident: Dict[str, Any]) -> Optional[datetime]:
    return parse_iso(accident.get("dateHeureAccident"))


def _history(accident: Dict[str, Any], action: str, actor: str, details: str, stamp: str) -> List[Dict[str, Any]]:
    return [
        *(accident.get("historique") or []),
        {"date": stamp, "action": action, "utilisateur": actor, "details": details},
    ]


def filter_accidents(rows: List[Dict[str, Any]], params: Mapping[str, str]) -> List[Dict[str, Any]]:
    """Exact-match filters, then newest accident first."""
    for param, field in (("typeAccident", "typeAccident"), ("statut", "statut"), ("gravite", "gravite")):
        if params.get(param):
            rows = [a for a in rows if a.get(field) == params[param]]
    if params.get("employeeId"):
        rows = [a for a in rows if str(a.get("employeId")) == params["employeeId"]]
    if params.get("arretTravail"):
        with_stoppage = params["arretTravail"] == "true"
        rows = [a for a in rows if _stoppage(a).get("existe") is with_stoppage]
    since = parse_iso(params.get("from"))
    until = parse_iso(params.get("to"))
    if since is not None:
        rows = [a for a in rows if _occurred(a) is not None and _occurred(a) >= since]
    if until is not None:
        rows = [a for a in rows if _occurred(a) is not None and _occurred(a) <= until]
    return sorted(
        rows,
        key=lambda a: (_occurred(a) is not None, _occurred(a) or datetime.min),
        reverse=True,
    )


def statistics(accidents: List[Dict[str, Any]]) -> Dict[str, Any]:
    def count(predicate) -> int:
        return sum(1 for a in accidents if predicate(a))

    def by(field: str, value: str) -> int:
        return count(lambda a: a.get(field) == value)

    return {
        "nombreTotal": len(accidents),
        "avecArret": count(lambda a: bool(_stoppage(a).get("existe"))),
        "sansArret": count(lambda a: not _stoppage(a).get("existe")),
        "joursPerdus": sum(_stoppage(a).get("dureePrevisionnelle") or 0 for a in accidents),
        "parType": {
            "surSite": by("typeAccident", "Sur site"),
            "trajet": by("typeAccident", "Trajet"),
        },
        "parGravite": {
            "leger": by("gravite", "Léger"),
            "moyen": by("gravite", "Moyen"),
            "grave": by("gravite", "Grave"),
        },
        "parStatut": {
            "brouillon": by("statut", DRAFT),
            "declare": by("statut", DECLARED),
            "transmisCNSS": by("statut", SENT_TO_CNSS),
            "enInstruction": by("statut", UNDER_REVIEW),
            "accepte": by("statut", ACCEPTED),
            "refuse": by("statut", REFUSED),
            "clos": by("statut", CLOSED),
        },
        "delaisRespect": {
            "respect": count(lambda a: bool(a.get("delaiDeclarationRespect"))),
            "horsDelai": count(lambda a: not a.get("delaiDeclarationRespect")),
        },
        "montantIndemnites": sum(
            (a.get("suiviCNSS") or {}).get("montantIndemnite") or 0 for a in accidents
        ),
    }


def next_accident_id(store: DocumentStore) -> int:
    """Sequential ids: one past the highest numeric id."""
    ids = [
        a["id"]
        for a in store.get_collection("accidentsTravail")
        if isinstance(a.get("id"), int) and not isinstance(a.get("id"), bool)
    ]
    return max(ids) + 1 if ids else 1


def receipt_number(year: int) -> str:
    return f"CNSS-AT-{year}-{random.randrange(999999):06d}"


@router.get("")
async def list_accidents(request: Request, store: DocumentStore = Depends(get_store)) -> Envelope:
    rows = filter_accidents(list(store.get_collection("accidentsTravail")), request.query_params)
    return Envelope.success("Liste des accidents du travail", rows)


@router.get("/statistiques")
async def accident_statistics(
    annee: Optional[str] = None, store: DocumentStore = Depends(get_store)
) -> Envelope:
    accidents = store.get_collection("accidentsTravail")
    if annee:
        try:
            year: Optional[int] = int(annee)
        except ValueError:
            year = None
        accidents = [a for a in accidents if _occurred(a) is not None and _occurred(a).year == year]
    return Envelope.success("Statistiques des accidents du travail", statistics(accidents))


@router.get("/{accident_id}")
async def get_accident(accident_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Détail de l'accident", require(store, "accidentsTravail", accident_id, _MISSING))


@router.post("", status_code=201)
async def create_accident(
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or {}
    stamp = iso_now()
    actor = body.get("declarePar") or DEFAULT_ACTOR

    hours: Optional[float] = 0.0
    if body.get("dateHeureAccident"):
        occurred = parse_iso(body["dateHeureAccident"])
        hours = abs((utc_now() - occurred).total_seconds()) / 3600 if occurred else None

    record = {
        "id": next_accident_id(store),
        **body,
        "statut": body.get("statut") or DRAFT,
        "dateDeclaration": stamp,
        "declarePar": actor,
        "delaiDeclarationRespect": hours is not None and hours <= DECLARATION_DEADLINE_HOURS,
        "heuresDepuisAccident": round(hours, 2) if hours is not None else None,
        "suiviCNSS": body.get("suiviCNSS") or dict(_EMPTY_CNSS_FOLLOW_UP),
        "suiviMedical": body.get("suiviMedical") or [],
        "impactPaie": body.get("impactPaie") or dict(_EMPTY_PAYROLL_IMPACT),
        "piecesJointes": body.get("piecesJointes") or [],
        "historique": [
            {"date": stamp, "action": "Création dossier", "utilisateur": actor, "details": "Dossier AT créé"}
        ],
        "relancesCNSS": [],
        "dateCreation": stamp,
        "dateModification": stamp,
        "archivageObligatoire": True,
        "dureeArchivage": 40,
    }
    store.insert("accidentsTravail", record)
    logger.info("Work accident %s opened", record["id"])
    return Envelope.success("Accident créé avec succès", record)


@router.put("/{accident_id}")
async def update_accident(
    accident_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    accident = require(store, "accidentsTravail", accident_id, _MISSING)
    body = body or {}
    stamp = iso_now()
    patch = {
        **body,
        "id": accident["id"],
        "dateCreation": accident.get("dateCreation"),
        "dateModification": stamp,
        "historique": _history(
            accident, "Modification", body.get("modifiePar") or DEFAULT_ACTOR, "Dossier modifié", stamp
        ),
    }
    return Envelope.success("Accident mis à jour", store.merge("accidentsTravail", accident["id"], patch))


@router.patch("/{accident_id}/declarer-cnss")
async def declare_to_cnss(
    accident_id: str,
    body: Optional[AccidentActor] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    accident = require(store, "accidentsTravail", accident_id, _MISSING)
    stamp = iso_now()
    receipt = receipt_number(utc_now().year)
    patch = {
        "statut": SENT_TO_CNSS,
        "suiviCNSS": {
            **(accident.get("suiviCNSS") or {}),
            "dateEnvoi": stamp,
            "numeroRecepisse": receipt,
            "decision": "En cours",
        },
        "dateModification": stamp,
        "historique": _history(
            accident,
            "Envoi CNSS",
            (body.utilisateur if body else None) or DEFAULT_ACTOR,
            f"Dossier transmis à la CNSS - Récépissé: {receipt}",
            stamp,
        ),
    }
    logger.info("Work accident %s sent to CNSS (%s)", accident["id"], receipt)
    return Envelope.success("Dossier transmis à la CNSS", store.merge("accidentsTravail", accident["id"], patch))


@router.patch("/{accident_id}/decision-cnss")
async def record_cnss_decision(
    accident_id: str,
    body: Optional[CnssDecision] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    accident = require(store, "accidentsTravail", accident_id, _MISSING)
    decision = body or CnssDecision()
    if not decision.decision:
        raise BadRequest("Décision CNSS requise")

    stamp = iso_now()
    details = f"AT {decision.decision.lower()}"
    if decision.tauxIPP:
        details += f" - IPP {decision.tauxIPP}%"
    patch = {
        "statut": ACCEPTED if decision.decision == ACCEPTED else REFUSED,
        "suiviCNSS": {
            **(accident.get("suiviCNSS") or {}),
            "decision": decision.decision,
            "tauxIPP": decision.tauxIPP or None,
            "montantIndemnite": decision.montantIndemnite or None,
            "dateDecision": stamp,
        },
        "dateModification": stamp,
        "historique": _history(accident, "Décision CNSS", "Système", details, stamp),
    }
    return Envelope.success("Décision CNSS enregistrée", store.merge("accidentsTravail", accident["id"], patch))


@router.patch("/{accident_id}/cloturer")
async def close_accident(
    accident_id: str,
    body: Optional[AccidentActor] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    accident = require(store, "accidentsTravail", accident_id, _MISSING)
    stamp = iso_now()
    patch = {
        "statut": CLOSED,
        "dateCloture": stamp,
        "dateModification": stamp,
        "historique": _history(
            accident,
            "Clôture",
            (body.utilisateur if body else None) or DEFAULT_ACTOR,
            "Dossier clôturé",
            stamp,
        ),
    }
    return Envelope.success("Accident clôturé", store.merge("accidentsTravail", accident["id"], patch))


@router.delete("/{accident_id}")
async def delete_accident(accident_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    accident = require(store, "accidentsTravail", accident_id, _MISSING)
    store.remove("accidentsTravail", accident["id"])
    return Envelope.success("Accident supprimé")
