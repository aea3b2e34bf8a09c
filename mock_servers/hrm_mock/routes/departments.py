"""Implements: GET /departments/simple-list"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hrm_core.schemas import Envelope
from mock_servers.hrm_mock.db import DocumentStore, get_store

router = APIRouter(tags=["Departments"])


@router.get("/departments/simple-list")
async def departments_simple_list(store: DocumentStore = Depends(get_store)) -> Envelope:
    data = [
        {"id": d.get("id"), "name": d.get("name") or d.get("label") or d.get("title")}
        for d in store.get_collection("departments")
    ]
    return Envelope.success("Récupération réussie", data)
