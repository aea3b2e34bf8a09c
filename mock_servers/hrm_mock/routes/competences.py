"""Skill catalogue settings.

Implements:
    GET    /settings/competences
    POST   /settings/competences
    PUT    /settings/competences/{id}
    DELETE /settings/competences/{id}
    GET    /settings/competences/{id}/niveaux

Registered ahead of the ``/settings/{resource}`` descriptor routes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store, iso_now, same_id
from mock_servers.hrm_mock.errors import BadRequest, Conflict
from mock_servers.hrm_mock.models import SkillCreate, SkillUpdate
from mock_servers.hrm_mock.resources import require

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings/competences", tags=["Settings"])

_MISSING = "Compétence non trouvée"


def _level_rank(level: Dict[str, Any]) -> float:
    try:
        return float(level.get("niveau"))
    except (TypeError, ValueError):
        return float("inf")


def _find_libelle(
    store: DocumentStore, libelle: str, exclude_id: Any = None
) -> Optional[Dict[str, Any]]:
    wanted = libelle.lower()
    for row in store.get_collection("Competences"):
        if exclude_id is not None and same_id(row.get("id"), exclude_id):
            continue
        if str(row.get("libelle") or "").lower() == wanted:
            return row
    return None


@router.get("")
async def list_competences(store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", store.get_collection("Competences"))


@router.get("/{competence_id}/niveaux")
async def competence_levels(competence_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    parsed = coerce_id(competence_id)
    if isinstance(parsed, str) or not parsed:
        raise BadRequest("competenceId requis")
    competence = require(store, "Competences", parsed, "Compétence introuvable")
    levels = store.where("CompetenceNiveaux", lambda n: same_id(n.get("competenceId"), competence["id"]))
    data = [
        {
            "id": n.get("id"),
            "niveau": n.get("niveau"),
            "libelle": n.get("libelle"),
            "description": n.get("description"),
        }
        for n in sorted(levels, key=_level_rank)
    ]
    return Envelope.success("Niveaux de la compétence récupérés", data)


@router.post("", status_code=201)
async def create_competence(
    body: Optional[SkillCreate] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or SkillCreate()
    if not body.libelle:
        raise BadRequest("libelle requis")
    if _find_libelle(store, body.libelle) is not None:
        raise Conflict("Cette compétence existe déjà")

    stamp = iso_now()
    competence = {
        "id": store.next_id(),
        "libelle": body.libelle,
        "categorie": body.categorie or "Autre",
        "description": body.description or "",
        "createdAt": stamp,
    }
    store.insert("Competences", competence)
    levels = [
        {
            "id": f"{competence['id']}-{index}",
            "competenceId": competence["id"],
            "niveau": level.niveau,
            "libelle": level.libelle,
            "description": level.description,
            "createdAt": stamp,
        }
        for index, level in enumerate(body.niveaux, start=1)
    ]
    if levels:
        store.insert_many("CompetenceNiveaux", levels)
    logger.info("Skill %s created with %s levels", competence["id"], len(levels))
    return Envelope.success(
        "Compétence créée avec succès", {"competence": competence, "niveaux": levels}
    )


@router.put("/{competence_id}")
async def update_competence(
    competence_id: str,
    body: Optional[SkillUpdate] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    body = body or SkillUpdate()
    competence = require(store, "Competences", competence_id, _MISSING)
    if body.libelle and _find_libelle(store, body.libelle, exclude_id=competence["id"]) is not None:
        raise Conflict("Une autre compétence avec ce libellé existe déjà")

    patch = {key: value for key, value in body.model_dump().items() if value is not None}
    patch["updatedAt"] = iso_now()
    updated = store.merge("Competences", competence["id"], patch)
    return Envelope.success("Compétence mise à jour avec succès", updated)


@router.delete("/{competence_id}")
async def delete_competence(competence_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    competence = require(store, "Competences", competence_id, _MISSING)
    store.remove_where("PosteCompetences", lambda link: same_id(link.get("competence_id"), competence["id"]))
    store.remove("Competences", competence["id"])
    return Envelope.success("Compétence supprimée avec succès", competence)
