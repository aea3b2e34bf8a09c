"""Shared fixtures: every test gets its own app around a fresh document."""

from __future__ import annotations

import copy
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from hrm_core.config import HRMSettings
from mock_servers.hrm_mock.app import create_app
from mock_servers.hrm_mock.db import SEED_PATH, DocumentStore

with open(SEED_PATH, "r", encoding="utf-8") as _f:
    _SEED = json.load(_f)


@pytest.fixture
def seed_document():
    return copy.deepcopy(_SEED)


@pytest.fixture
def settings():
    return HRMSettings(data_file=None, log_level="WARNING")


@pytest.fixture
def store(seed_document):
    return DocumentStore(seed_document)


@pytest.fixture
def app(store, settings):
    return create_app(store=store, settings=settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
async def async_client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def admin_login(client):
    """Log in as the default admin and return the envelope's ``data``."""
    resp = client.post("/login", json={"email": "admin@example.com", "password": "password"})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]
