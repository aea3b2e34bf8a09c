"""Tests for login, refresh and /me."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from hrm_core.config import HRMSettings
from mock_servers.hrm_mock.app import create_app
from mock_servers.hrm_mock.auth import create_token, strip_bearer, to_base36
from mock_servers.hrm_mock.db import DocumentStore


class TestTokens:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_tokens_differ(self):
        assert create_token() != create_token()

    def test_strip_bearer(self):
        assert strip_bearer("Bearer abc") == "abc"
        assert strip_bearer("  abc ") == "abc"
        assert strip_bearer(None) == ""


class TestLogin:
    def test_login_success(self, client, store):
        resp = client.post("/login", json={"email": "admin@example.com", "password": "password"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        assert body["message"] == "Connexion réussie"
        data = body["data"]
        assert data["role"]["code"] == "ADMIN"
        assert data["user"]["email"] == "admin@example.com"
        assert data["full_name"] == "Admin User"
        assert "password" not in data["user"]
        assert data["access_token"] != data["refresh_token"]

        sessions = store.get_collection("sessions")
        assert len(sessions) == 1
        assert sessions[0]["userId"] == 1
        assert sessions[0]["expiresAt"] > sessions[0]["id"]

    def test_missing_credentials(self, client):
        resp = client.post("/login", json={"email": "admin@example.com"})
        assert resp.status_code == 400
        assert resp.json() == {"status": "error", "message": "Email et mot de passe requis", "data": None}

    def test_no_body(self, client):
        resp = client.post("/login")
        assert resp.status_code == 400

    def test_bad_password(self, client):
        resp = client.post("/login", json={"email": "admin@example.com", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Identifiants invalides"

    def test_non_admin_still_gets_admin_role(self, client):
        resp = client.post("/login", json={"email": "rh@example.com", "password": "password"})
        assert resp.json()["data"]["role"]["code"] == "ADMIN"


class TestMe:
    def test_me_with_token(self, client, admin_login):
        resp = client.get("/me", headers={"Authorization": f"Bearer {admin_login['access_token']}"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Profil récupéré"
        assert body["data"]["user"]["id"] == 1
        assert body["data"]["role"]["code"] == "ADMIN"

    def test_raw_token_accepted(self, client, admin_login):
        resp = client.get("/me", headers={"Authorization": admin_login["access_token"]})
        assert resp.status_code == 200

    def test_missing_token(self, client):
        resp = client.get("/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Aucun jeton fourni"

    def test_unknown_token(self, client):
        resp = client.get("/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Jeton invalide"

    def test_deleted_user(self, client, store, admin_login):
        store.remove("users", 1)
        resp = client.get("/me", headers={"Authorization": f"Bearer {admin_login['access_token']}"})
        assert resp.status_code == 404
        assert resp.json()["message"] == "Utilisateur introuvable"

    def test_expired_session_accepted_by_default(self, client, store, admin_login):
        store.get_collection("sessions")[0]["expiresAt"] = 0
        resp = client.get("/me", headers={"Authorization": f"Bearer {admin_login['access_token']}"})
        assert resp.status_code == 200

    def test_expired_session_refused_when_enforced(self, seed_document):
        settings = HRMSettings(enforce_session_expiry=True, log_level="WARNING")
        store = DocumentStore(seed_document)
        client = TestClient(create_app(store=store, settings=settings))
        data = client.post("/login", json={"email": "admin@example.com", "password": "password"}).json()["data"]
        store.get_collection("sessions")[0]["expiresAt"] = 0

        resp = client.get("/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Session expirée"


@pytest.mark.parametrize(
    "roles, first_role",
    [
        (["EMPLOYEE"], "EMPLOYEE"),
        ([{"id": 3, "code": "EMP"}], {"id": 3, "code": "EMP"}),
        (None, None),
    ],
)
def test_free_form_roles_pass_through(client, store, roles, first_role):
    created = client.post("/users", json={"email": "e@x.io", "password": "p", "roles": roles})
    assert created.status_code == 201

    resp = client.post("/login", json={"email": "e@x.io", "password": "p"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["roles"] == roles
    assert data["role"]["code"] == "ADMIN"
    assert len(store.get_collection("sessions")) == 1

    me = client.get("/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["user"]["roles"] == roles
    assert me.json()["data"]["role"] == first_role


def test_failed_login_stores_no_session(app, store):
    # A user record without an id cannot be projected.
    store.get_collection("users").append({"email": "bad@x.io", "password": "p"})
    client = TestClient(app, raise_server_exceptions=False)
    resp = client.post("/login", json={"email": "bad@x.io", "password": "p"})
    assert resp.status_code == 500
    assert store.get_collection("sessions") == []


class TestRefresh:
    def test_rotation(self, client, store, admin_login):
        resp = client.post("/refresh", json={"refresh_token": admin_login["refresh_token"]})
        assert resp.status_code == 200
        pair = resp.json()["data"]
        assert pair["access_token"] != admin_login["access_token"]
        assert pair["refresh_token"] != admin_login["refresh_token"]
        assert "updatedAt" in store.get_collection("sessions")[0]

        old = client.get("/me", headers={"Authorization": f"Bearer {admin_login['access_token']}"})
        assert old.status_code == 401
        new = client.get("/me", headers={"Authorization": f"Bearer {pair['access_token']}"})
        assert new.status_code == 200

    def test_old_refresh_token_invalid(self, client, admin_login):
        client.post("/refresh", json={"refresh_token": admin_login["refresh_token"]})
        resp = client.post("/refresh", json={"refresh_token": admin_login["refresh_token"]})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Jeton de rafraîchissement invalide"

    def test_missing_refresh_token(self, client):
        resp = client.post("/refresh", json={})
        assert resp.status_code == 400
        assert resp.json()["message"] == "refresh_token requis"
