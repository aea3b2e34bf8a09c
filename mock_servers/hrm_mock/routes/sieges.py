"""Headquarters and employee groups.

Implements:
    GET /sieges
    GET /sieges/{id}
    GET /sieges/{id}/groups
    GET /groups
    GET /groups/{id}
    GET /groups/{id}/members
    PUT /groups/{id}/members
    GET /groups/employee/{id}

Joins are recomputed on every request.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.auth import to_base36
from mock_servers.hrm_mock.db import DocumentStore, coerce_id, get_store, now_ms, same_id
from mock_servers.hrm_mock.errors import NotFound
from mock_servers.hrm_mock.models import GroupMembersUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sieges"])

_MEMBER_PROJECTION = ("id", "firstName", "lastName", "matricule", "email", "departmentId", "position")


def _siege(store: DocumentStore, raw_id: str) -> Dict[str, Any]:
    siege = store.find("headquarters", coerce_id(raw_id))
    if siege is None:
        raise NotFound("Siège introuvable")
    return siege


def _group(store: DocumentStore, raw_id: str) -> Dict[str, Any]:
    group = store.find("groups", coerce_id(raw_id))
    if group is None:
        raise NotFound("Groupe introuvable")
    return group


def _groups_of(store: DocumentStore, siege: Dict[str, Any]) -> List[Dict[str, Any]]:
    return store.where("groups", lambda g: same_id(g.get("headquartersId"), siege["id"]))


def _member_id() -> str:
    return f"gm-{now_ms()}-{to_base36(random.getrandbits(20)).rjust(4, '0')[:4]}"


@router.get("/sieges")
async def list_sieges(store: DocumentStore = Depends(get_store)) -> Envelope:
    data = [
        {
            **siege,
            "groups": [
                {"id": g.get("id"), "name": g.get("name"), "code": g.get("code")}
                for g in _groups_of(store, siege)
            ],
        }
        for siege in store.get_collection("headquarters")
    ]
    return Envelope.success("Récupération réussie", data)


@router.get("/sieges/{siege_id}")
async def get_siege(siege_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    siege = _siege(store, siege_id)
    return Envelope.success("Récupération réussie", {**siege, "groups": _groups_of(store, siege)})


@router.get("/sieges/{siege_id}/groups")
async def siege_groups(siege_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    siege = _siege(store, siege_id)
    return Envelope.success("Récupération réussie", _groups_of(store, siege))


@router.get("/groups")
async def list_groups(store: DocumentStore = Depends(get_store)) -> Envelope:
    data = [
        {**g, "headquarters": store.find("headquarters", g.get("headquartersId"))}
        for g in store.get_collection("groups")
    ]
    return Envelope.success("Récupération réussie", data)


@router.get("/groups/employee/{employee_id}")
async def employee_groups(employee_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    group_ids = [
        m.get("groupId")
        for m in store.get_collection("groupMembers")
        if same_id(m.get("employeeId"), employee_id)
    ]
    data = store.where("groups", lambda g: any(same_id(g.get("id"), gid) for gid in group_ids))
    return Envelope.success("Récupération réussie", data)


@router.get("/groups/{group_id}")
async def get_group(group_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    group = _group(store, group_id)
    headquarters = store.find("headquarters", group.get("headquartersId"))
    return Envelope.success("Récupération réussie", {**group, "headquarters": headquarters})


@router.get("/groups/{group_id}/members")
async def group_members(group_id: str, store: DocumentStore = Depends(get_store)) -> Envelope:
    group = _group(store, group_id)
    members = store.where("groupMembers", lambda m: same_id(m.get("groupId"), group["id"]))

    detailed = []
    for member in members:
        employee: Optional[Dict[str, Any]] = store.find("hrEmployees", member.get("employeeId"))
        detailed.append(
            {
                "id": member.get("id"),
                "isManager": bool(member.get("isManager")),
                "employee": {k: employee.get(k) for k in _MEMBER_PROJECTION} if employee else None,
            }
        )
    managers = [m["employee"] for m in detailed if m["isManager"] and m["employee"]]

    data = {
        "group": {
            "id": group.get("id"),
            "name": group.get("name"),
            "code": group.get("code"),
            "headquartersId": group.get("headquartersId"),
        },
        "members": detailed,
        "managers": managers,
    }
    return Envelope.success("Récupération réussie", data)


@router.put("/groups/{group_id}/members")
async def replace_group_members(
    group_id: str,
    body: Optional[GroupMembersUpdate] = None,
    store: DocumentStore = Depends(get_store),
) -> Envelope:
    group = _group(store, group_id)
    members = body.members if body else []

    store.remove_where("groupMembers", lambda m: same_id(m.get("groupId"), group["id"]))
    rows = [
        {
            "id": _member_id(),
            "groupId": group["id"],
            "employeeId": m.employeeId,
            "isManager": m.isManager,
        }
        for m in members
    ]
    store.insert_many("groupMembers", rows)
    logger.info("Group %s now has %s members", group["id"], len(rows))
    return Envelope.success("Membres mis à jour", {"groupId": group["id"], "count": len(rows)})
