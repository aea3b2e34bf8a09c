"""Settings endpoints, one descriptor per resource.

Implements, for each resource in ``SETTINGS_RESOURCES``:
    GET    /settings/{resource}
    GET    /settings/{resource}/{id}
    POST   /settings/{resource}
    PUT    /settings/{resource}/{id}
    PATCH  /settings/{resource}/{id}
    DELETE /settings/{resource}/{id}
    PATCH  /settings/{resource}/{id}/activate     (toggleable resources)
    PATCH  /settings/{resource}/{id}/deactivate   (toggleable resources)
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from hrm_core.config import CONTRACT_TYPES
from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, get_store
from mock_servers.hrm_mock.errors import BadRequest, NotFound, Unprocessable
from mock_servers.hrm_mock.resources import FieldSpec, ResourceDescriptor, ResourceHandler

router = APIRouter(prefix="/settings", tags=["Settings"])


# --- Joins ---


def _ref(record: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    return {"id": record.get("id"), "code": record.get("code"), "libelle": record.get("libelle")}


def enrich_poste(store: DocumentStore, poste: Dict[str, Any]) -> Dict[str, Any]:
    """Replace ``metier_id`` with the metier and, through it, the emploi."""
    metier = store.find("settingsMetiers", poste.get("metier_id")) if poste.get("metier_id") else None
    emploi = None
    if metier is not None and metier.get("emploi_id"):
        emploi = store.find("settingsEmplois", metier["emploi_id"])
    enriched = {k: v for k, v in poste.items() if k != "metier_id"}
    enriched["metier"] = _ref(metier)
    enriched["emploi"] = _ref(emploi)
    return enriched


def enrich_manager(store: DocumentStore, row: Dict[str, Any]) -> Dict[str, Any]:
    employee = store.find("hrEmployees", row.get("employe_id")) or {}
    department = store.find("departments", row.get("departement_id")) or {}

    full = employee.get("full_name") or employee.get("name")
    words = str(full).split() if full else []
    first = employee.get("firstName") or employee.get("prenom") or (" ".join(words[:-1]) if words else None)
    last = employee.get("lastName") or employee.get("nom") or (words[-1] if words else None)
    display = full or " ".join(part for part in (first, last) if part).strip()

    return {
        **row,
        "employee_name": display or None,
        "employee_first_name": first or None,
        "employee_last_name": last or None,
        "departement_name": department.get("name") or department.get("libelle"),
    }


# --- Reference checks ---


def check_metier(store: DocumentStore, row: Dict[str, Any]) -> None:
    if row.get("metier_id") and store.find("settingsMetiers", row["metier_id"]) is None:
        raise BadRequest("Métier inconnu")


def check_manager_refs(store: DocumentStore, row: Dict[str, Any]) -> None:
    has_employee = store.find("hrEmployees", row.get("employe_id")) is not None
    has_department = store.find("departments", row.get("departement_id")) is not None
    if not has_employee or not has_department:
        raise Unprocessable("Employé ou département inexistant")


# --- Descriptors ---

_CODE = FieldSpec(name="code", required=True)
_LIBELLE = FieldSpec(name="libelle", required=True)
_ACTIVE = FieldSpec(name="is_active", kind="active")

SETTINGS_RESOURCES: Dict[str, ResourceDescriptor] = {
    d.name: d
    for d in (
        ResourceDescriptor(
            name="departements",
            collection="settingsDepartements",
            fields=[_CODE, _LIBELLE, _ACTIVE],
            required_message="Code et libellé requis",
            unique_field="code",
            toggleable=True,
        ),
        ResourceDescriptor(
            name="postes",
            collection="settingsPostes",
            fields=[_CODE, _LIBELLE, FieldSpec(name="metier_id", kind="raw", required=True), _ACTIVE],
            required_message="Code, libellé et métier requis",
            unique_field="code",
            toggleable=True,
            check_refs=check_metier,
            enrich=enrich_poste,
        ),
        ResourceDescriptor(
            name="emplois",
            collection="settingsEmplois",
            fields=[
                _CODE,
                _LIBELLE,
                FieldSpec(
                    name="type_contrat",
                    required=True,
                    choices=CONTRACT_TYPES,
                    choices_message="Type de contrat invalide",
                ),
                _ACTIVE,
            ],
            required_message="Code, libellé et type de contrat requis",
            unique_field="code",
            toggleable=True,
        ),
        ResourceDescriptor(
            name="metiers",
            collection="settingsMetiers",
            fields=[
                _CODE,
                _LIBELLE,
                FieldSpec(name="domaine", required=True),
                FieldSpec(name="emploi_id", kind="raw"),
                _ACTIVE,
            ],
            required_message="Code, libellé et domaine requis",
            unique_field="code",
            toggleable=True,
        ),
        ResourceDescriptor(
            name="lieux-travail",
            collection="settingsLieuxTravail",
            fields=[_CODE, _LIBELLE, FieldSpec(name="adresse", required=True)],
            required_message="Code, libellé et adresse requis",
            unique_field="code",
        ),
        ResourceDescriptor(
            name="types-absences",
            collection="settingsTypesAbsences",
            fields=[
                _CODE,
                _LIBELLE,
                FieldSpec(name="remunere", kind="bool"),
                FieldSpec(name="deduit_compteur", kind="bool"),
                FieldSpec(name="delai_prevenance_jours", kind="number", default=0),
                FieldSpec(name="duree_max", kind="number", default=0),
                FieldSpec(name="acquisition_mensuelle", kind="number", default=0),
                FieldSpec(name="plafond_annuel", kind="number", default=0),
                FieldSpec(name="report_possible", kind="bool"),
                FieldSpec(name="description"),
            ],
            required_message="Code et libellé requis",
            unique_field="code",
        ),
        ResourceDescriptor(
            name="managers",
            collection="settingsManagers",
            fields=[
                FieldSpec(name="employe_id", kind="number", required=True, invalid_message="IDs numériques requis"),
                FieldSpec(name="departement_id", kind="number", required=True, invalid_message="IDs numériques requis"),
            ],
            required_message="employe_id et departement_id requis (numériques)",
            check_refs=check_manager_refs,
            enrich=enrich_manager,
        ),
        ResourceDescriptor(
            name="conditions-periode-essaie",
            collection="settingsConditionsPeriodeEssaie",
            fields=[FieldSpec(name="name", required=True), FieldSpec(name="description")],
            required_message="Nom requis",
            unique_field="name",
            unique_message="Nom déjà existant",
            drop_on_update=("value",),
        ),
    )
}


def _handler(resource: str, store: DocumentStore) -> ResourceHandler:
    descriptor = SETTINGS_RESOURCES.get(resource)
    if descriptor is None:
        raise NotFound()
    return ResourceHandler(descriptor, store)


@router.get("/{resource}")
async def list_settings(resource: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    return Envelope.success("Récupération réussie", _handler(resource, store).list_all())


@router.get("/{resource}/{item_id}")
async def get_setting(
    resource: str, item_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    return Envelope.success("Récupération réussie", _handler(resource, store).show(item_id))


@router.post("/{resource}", status_code=201)
async def create_setting(
    resource: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    record = _handler(resource, store).create(body or {})
    return Envelope.success("Création réussie", record)


@router.put("/{resource}/{item_id}")
@router.patch("/{resource}/{item_id}")
async def update_setting(
    resource: str,
    item_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    record = _handler(resource, store).update(item_id, body or {})
    return Envelope.success("Mise à jour réussie", record)


@router.delete("/{resource}/{item_id}")
async def delete_setting(
    resource: str, item_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    data = _handler(resource, store).delete(item_id)
    return Envelope.success("Suppression réussie", data)


def _toggle(resource: str, item_id: str, store: DocumentStore, active: bool) -> Dict[str, Any]:
    handler = _handler(resource, store)
    if not handler.descriptor.toggleable:
        raise NotFound()
    return handler.set_active(item_id, active)


@router.patch("/{resource}/{item_id}/activate")
async def activate_setting(
    resource: str, item_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    return Envelope.success("Activation réussie", _toggle(resource, item_id, store, True))


@router.patch("/{resource}/{item_id}/deactivate")
async def deactivate_setting(
    resource: str, item_id: str, store: DocumentStore = Depends(get_store)
) -> Envelope:
    return Envelope.success("Désactivation réussie", _toggle(resource, item_id, store, False))
