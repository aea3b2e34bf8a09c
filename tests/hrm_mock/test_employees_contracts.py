"""Tests for employees, contracts, avenants and leave counters."""

from __future__ import annotations

from mock_servers.hrm_mock.routes.employees import is_manager


class TestEmployees:
    def test_paginated_list(self, client):
        body = client.get("/hrEmployees", params={"length": 2, "sortBy": "lastName"}).json()
        assert body["message"] == "Liste des employés récupérée avec succès"
        assert body["recordsTotal"] == 4
        assert body["recordsFiltered"] == 4
        assert [r["lastName"] for r in body["data"]] == ["Alaoui", "Chraibi"]
        assert all(r["actions"] == 1 for r in body["data"])

    def test_filtered_list(self, client):
        body = client.get("/hrEmployees", params={"departmentId": "2"}).json()
        assert body["recordsTotal"] == 4
        assert body["recordsFiltered"] == 2

    def test_simple_list(self, client):
        rows = client.get("/hrEmployees/simple-list").json()["data"]
        assert rows[0] == {"id": 1, "firstName": "Youssef", "lastName": "Alaoui", "matricule": "EMP-001"}

    def test_managers_simple_list(self, client):
        rows = client.get("/hrEmployees/managers/simple-list").json()["data"]
        # Tag, "Chef de projet" and "Responsable gestion paie"; not "Développeur".
        assert [r["id"] for r in rows] == [1, 2, 4]
        assert "email" in rows[0]

    def test_is_manager_experiences(self):
        assert is_manager({"experiences": [{"title": "Engineering Manager"}]})
        assert not is_manager({"experiences": [{"title": "Stagiaire"}], "tags": ["backend"]})

    def test_delete(self, client, store):
        resp = client.delete("/hrEmployees/4")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Employé #4 supprimé"
        assert store.find("hrEmployees", 4) is None

    def test_delete_missing(self, client):
        resp = client.delete("/hrEmployees/99")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Employé introuvable"

    def test_show_through_generic_router(self, client):
        assert client.get("/hrEmployees/3").json()["data"]["firstName"] == "Karim"


class TestHistory:
    def test_history_sorted(self, client, store):
        store.insert(
            "employeeHistory",
            {"id": "eh-3-early", "employeeId": 3, "title": "Stage", "createdAt": "2022-06-01T00:00:00.000Z"},
        )
        rows = client.get("/hrEmployees/3/history").json()["data"]
        assert [r["id"] for r in rows] == ["eh-3-early", "eh-3-1700000000000"]

    def test_add_entry_defaults(self, client, store):
        resp = client.post("/hrEmployees/2/history", json={})
        assert resp.status_code == 200
        entry = resp.json()["data"]
        assert entry["id"].startswith("eh-2-")
        assert entry["employeeId"] == 2
        assert entry["type"] == "custom"
        assert entry["title"] == "Mouvement"
        assert entry["oldValue"] is None
        assert store.find("employeeHistory", entry["id"]) is not None

    def test_add_entry_unknown_employee(self, client):
        assert client.post("/hrEmployees/99/history", json={"title": "x"}).status_code == 404

    def test_movement_types(self, client):
        rows = client.get("/movement-types").json()["data"]
        assert [r["code"] for r in rows] == ["hiring", "promotion", "transfer"]


class TestContracts:
    def test_list_enriched(self, client):
        body = client.get("/contracts").json()
        assert body["recordsTotal"] == 2
        first, second = body["data"]
        assert first["employee_name"] == "Karim Tazi"
        assert first["employee_matricule"] == "EMP-003"
        # Older records use the French field name.
        assert second["employee"]["lastName"] == "Chraibi"
        assert first["actions"] == 1

    def test_filter_on_enriched_field(self, client):
        body = client.get("/contracts", params={"employee_name": "chraibi"}).json()
        assert body["recordsFiltered"] == 1
        assert body["data"][0]["id"] == 2

    def test_show(self, client):
        data = client.get("/contracts/1").json()["data"]
        assert data["employee"]["position"] == "Développeur"

    def test_show_missing(self, client):
        resp = client.get("/contracts/99")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Contrat introuvable"

    def test_validate_draft(self, client):
        resp = client.post("/contracts/2/validate")
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "Actif"
        assert resp.json()["data"]["statut"] == "Actif"

    def test_validate_non_draft(self, client):
        resp = client.post("/contracts/1/validate")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Seuls les contrats en brouillon peuvent être validés"

    def test_delete_only_drafts(self, client, store):
        assert client.delete("/contracts/1").status_code == 400
        resp = client.delete("/contracts/2")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Contrat #2 supprimé"
        assert store.find("contracts", 2) is None

    def test_generate(self, client):
        assert client.post("/contracts/1/generate").json()["data"] == {"url": "/generated/contract-1.pdf"}

    def test_upload_signed(self, client):
        data = client.post("/contracts/2/upload-signed", json={"fileName": "c.pdf"}).json()["data"]
        assert data["status"] == "Actif"
        assert data["signed_document"]["name"] == "c.pdf"
        assert data["signed_document"]["url"] == "/uploads/contracts/2/signed.pdf"

    def test_cancel(self, client):
        data = client.post("/contracts/1/cancel").json()["data"]
        assert data["status"] == "Annulé"
        assert data["cancellation_reason"] == "Annulation via mock"

        data = client.post("/contracts/2/cancel", json={"reason": "Doublon"}).json()["data"]
        assert data["cancellation_reason"] == "Doublon"

    def test_contract_avenants(self, client):
        rows = client.get("/contracts/1/avenants").json()["data"]
        assert [r["id"] for r in rows] == ["AVN-1"]
        assert client.get("/contracts/2/avenants").json()["data"] == []


class TestAvenants:
    def test_list(self, client):
        body = client.get("/avenants").json()
        assert body["recordsTotal"] == 1
        assert body["data"][0]["id"] == "AVN-1"

    def test_create_default_id(self, client, store):
        resp = client.post("/avenants", json={"contract_id": 1, "objet": "Mutation"})
        assert resp.status_code == 201
        avenant_id = resp.json()["data"]["id"]
        assert avenant_id.startswith("AVN-")
        assert store.find("avenants", avenant_id)["objet"] == "Mutation"

    def test_update_and_delete(self, client, store):
        resp = client.put("/avenants/AVN-1", json={"statut": "Annulé"})
        assert resp.json()["data"]["statut"] == "Annulé"
        assert client.delete("/avenants/AVN-1").status_code == 200
        assert store.find("avenants", "AVN-1") is None

    def test_missing(self, client):
        resp = client.get("/avenants/AVN-404")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Avenant introuvable"

    def test_documents(self, client, store):
        data = client.post("/avenants/AVN-1/generate-pdf").json()["data"]
        assert data["document_url"] == "/uploads/avenants/AVN-1/generated.pdf"

        signed = client.post(
            "/avenants/AVN-1/upload-signed", json={"fileUrl": "/f.pdf", "fileName": "f.pdf"}
        ).json()["data"]["signed_document"]
        assert signed["url"] == "/f.pdf"
        assert store.find("avenants", "AVN-1")["signed_document"]["name"] == "f.pdf"


class TestCongeCompteurs:
    def test_list_enriched(self, client):
        body = client.get("/conge-compteurs").json()
        row = body["data"][0]
        assert row["type_absence"]["code"] == "CP"
        assert row["employee"] == {"id": 3, "first_name": "Karim", "last_name": "Tazi", "matricule": "EMP-003"}

    def test_show(self, client):
        data = client.get("/conge-compteurs/2").json()["data"]
        assert data["type_absence"]["libelle"] == "Congé payé"

    def test_show_missing(self, client):
        resp = client.get("/conge-compteurs/99")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Compteur de congés non trouvé"

    def test_by_employee(self, client):
        rows = client.get("/conge-compteurs/employee/4").json()["data"]
        assert [r["id"] for r in rows] == [2]

    def test_create(self, client):
        resp = client.post("/conge-compteurs", json={"employee_id": 1, "type_absence_id": 2})
        assert resp.status_code == 201
        assert resp.json()["message"] == "Compteur de congés créé avec succès"
        assert resp.json()["data"]["id"]
