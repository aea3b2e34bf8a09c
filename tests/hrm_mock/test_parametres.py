"""Tests for /parametre-max-general."""

from __future__ import annotations


def test_list(client):
    body = client.get("/parametre-max-general").json()
    assert [r["type"] for r in body["data"]] == ["Avance sur salaire", "Prêt"]


def test_create(client):
    resp = client.post("/parametre-max-general", json={"type": " Acompte ", "max": "1500"})
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["type"] == "Acompte"
    assert data["max"] == 1500
    assert data["is_required"] is False


def test_create_requires_type_and_max(client):
    resp = client.post("/parametre-max-general", json={"type": "Acompte"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Type et valeur maximale requis"

    resp = client.post("/parametre-max-general", json={"type": "Acompte", "max": "beaucoup"})
    assert resp.status_code == 400


def test_duplicate_type(client):
    resp = client.post("/parametre-max-general", json={"type": "prêt", "max": 1})
    assert resp.status_code == 409
    assert resp.json()["message"] == "Type déjà existant"


class TestRequiredFlag:
    def test_required_row_cannot_be_updated(self, client, store):
        resp = client.put("/parametre-max-general/1", json={"max": 1})
        assert resp.status_code == 403
        assert resp.json()["message"] == "Modification interdite pour un paramètre requis"
        assert store.find("parametreMaxGeneral", 1)["max"] == 3000

    def test_required_row_cannot_be_deleted(self, client, store):
        resp = client.delete("/parametre-max-general/1")
        assert resp.status_code == 403
        assert resp.json()["message"] == "Suppression interdite pour un paramètre requis"
        assert store.find("parametreMaxGeneral", 1) is not None

    def test_flag_cannot_be_set_through_update(self, client):
        resp = client.patch("/parametre-max-general/2", json={"is_required": True, "max": "25000"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["is_required"] is False
        assert data["max"] == 25000

    def test_invalid_max_on_update(self, client):
        resp = client.patch("/parametre-max-general/2", json={"max": "n/a"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Valeur maximale invalide"

    def test_optional_row_deleted(self, client):
        resp = client.delete("/parametre-max-general/2")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"id": 2}


def test_missing_row(client):
    assert client.get("/parametre-max-general/99").status_code == 404
