"""Job postings.

Implements:
    GET /offres/getAll
    GET /offres/{id}/detail

Both views are joins recomputed per request over ``offres`` and its satellite
collections (``Missions``, ``ProfilRecherche``, ``candidatures``,
``OffreStatistiques``, ``OffreDiffusions``, ``OffreCompetences``).
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, get_store, same_id
from mock_servers.hrm_mock.resources import require

router = APIRouter(prefix="/offres", tags=["Offres"])

# Diffusion flags of the detail view, keyed by channel code.
DIFFUSION_CHANNELS = {
    "siteCarrieres": "SITE_CARRIERE",
    "linkedin": "LinkedIn",
    "rekrute": "REKRUTE",
    "emploiMa": "EMPLOI_MA",
    "reseauxSociaux": "RESEAUX_SOCIAUX",
}


def _of_offre(store: DocumentStore, collection: str, offre_id: Any) -> List[Dict[str, Any]]:
    return store.where(collection, lambda row: same_id(row.get("offreId"), offre_id))


def _profile(rows: List[Dict[str, Any]], kind: str) -> Any:
    return next((row.get("contenu") for row in rows if row.get("type") == kind), None) or None


@router.get("/getAll")
async def list_offres(store: DocumentStore = Depends(get_store)) -> Envelope:
    data = [
        {
            **offre,
            "poste": store.find("settingsPostes", offre.get("posteId")),
            "responsable": store.find("responsables", offre.get("responsableId")),
            "Missions": _of_offre(store, "Missions", offre.get("id")),
            "ProfilRecherche": _of_offre(store, "ProfilRecherche", offre.get("id")),
            "candidatures": _of_offre(store, "candidatures", offre.get("id")),
            "OffreStatistiques": _of_offre(store, "OffreStatistiques", offre.get("id")),
        }
        for offre in store.get_collection("offres")
    ]
    return Envelope.success("Récupération réussie", data)


@router.get("/{offre_id}/detail")
async def offre_detail(offre_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    offre = require(store, "offres", offre_id, "Offre introuvable")
    record_id = offre["id"]

    skill_ids = [link.get("competenceId") for link in _of_offre(store, "OffreCompetences", record_id)]
    skills = [
        c.get("libelle")
        for c in store.get_collection("Competences")
        if any(same_id(c.get("id"), skill_id) for skill_id in skill_ids)
    ]
    profile = _of_offre(store, "ProfilRecherche", record_id)
    stats = next(iter(_of_offre(store, "OffreStatistiques", record_id)), None) or {}
    channels = {row.get("canal") for row in _of_offre(store, "OffreDiffusions", record_id)}
    responsable = store.find("responsables", offre.get("responsableId")) or {}

    return Envelope.success(
        "Offre récupérée",
        {
            "id": record_id,
            "reference": offre.get("reference"),
            "poste": store.find("settingsPostes", offre.get("posteId")),
            "descriptionPoste": offre.get("description"),
            "missionsPrincipales": [m.get("libelle") for m in _of_offre(store, "Missions", record_id)],
            "competencesRequises": skills,
            "lieuTravail": offre.get("lieuTravail"),
            "typeContrat": offre.get("typeContrat"),
            "statut": offre.get("statut"),
            "anonyme": offre.get("anonymisee"),
            "dateLimiteCandidature": offre.get("dateLimiteCandidature"),
            "dateCreation": offre.get("createdAt"),
            "profilRecherche": {
                "formation": _profile(profile, "FORMATION"),
                "experience": _profile(profile, "EXPERIENCE"),
            },
            "responsableRecrutement": {
                "nom": responsable.get("nom"),
                "email": responsable.get("email"),
            },
            "statistiques": {
                "vues": stats.get("nombreVues") or 0,
                "candidaturesRecues": stats.get("nombreCandidatures") or 0,
            },
            "diffusion": {flag: code in channels for flag, code in DIFFUSION_CHANNELS.items()},
        },
    )
