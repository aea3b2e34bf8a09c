"""Tests for work accident files and the CNSS follow-up."""

from __future__ import annotations

import re
from datetime import timedelta

import pytest

from mock_servers.hrm_mock.db import utc_now
from mock_servers.hrm_mock.routes.accidents import next_accident_id, statistics

BASE = "/accidents-travail"


class TestListing:
    def test_newest_first(self, client):
        body = client.get(BASE).json()
        assert body["message"] == "Liste des accidents du travail"
        assert [a["id"] for a in body["data"]] == [2, 1]

    def test_undated_last(self, client, store):
        store.insert("accidentsTravail", {"id": 3, "employeId": 1})
        assert [a["id"] for a in client.get(BASE).json()["data"]] == [2, 1, 3]

    @pytest.mark.parametrize(
        "params, expected",
        [
            ({"employeeId": "3"}, [1]),
            ({"typeAccident": "Trajet"}, [2]),
            ({"gravite": "Léger"}, [1]),
            ({"statut": "Accepté"}, [2]),
            ({"arretTravail": "true"}, [1]),
            ({"arretTravail": "false"}, [2]),
            ({"from": "2024-05-01"}, [2]),
            ({"to": "2024-05-01"}, [1]),
        ],
    )
    def test_filters(self, client, params, expected):
        assert [a["id"] for a in client.get(BASE, params=params).json()["data"]] == expected


class TestStatistics:
    def test_all_years(self, client):
        data = client.get(f"{BASE}/statistiques").json()["data"]
        assert data["nombreTotal"] == 2
        assert data["avecArret"] == 1
        assert data["sansArret"] == 1
        assert data["joursPerdus"] == 5
        assert data["parType"] == {"surSite": 1, "trajet": 1}
        assert data["parGravite"] == {"leger": 1, "moyen": 1, "grave": 0}
        assert data["parStatut"]["declare"] == 1
        assert data["parStatut"]["accepte"] == 1
        assert data["delaisRespect"] == {"respect": 1, "horsDelai": 1}
        assert data["montantIndemnites"] == 1500

    def test_by_year(self, client):
        assert client.get(f"{BASE}/statistiques", params={"annee": "2024"}).json()["data"]["nombreTotal"] == 2
        assert client.get(f"{BASE}/statistiques", params={"annee": "2023"}).json()["data"]["nombreTotal"] == 0
        assert client.get(f"{BASE}/statistiques", params={"annee": "x"}).json()["data"]["nombreTotal"] == 0

    def test_empty(self):
        data = statistics([])
        assert data["nombreTotal"] == 0
        assert data["montantIndemnites"] == 0


class TestDossier:
    def test_show(self, client):
        body = client.get(f"{BASE}/1").json()
        assert body["message"] == "Détail de l'accident"
        assert body["data"]["lieu"] == "Entrepôt Casablanca"

    def test_missing(self, client):
        resp = client.get(f"{BASE}/99")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Accident non trouvé"

    def test_next_id(self, store):
        assert next_accident_id(store) == 3
        store.get_collection("accidentsTravail").clear()
        assert next_accident_id(store) == 1

    def test_create_within_deadline(self, client, store):
        occurred = (utc_now() - timedelta(hours=5)).isoformat() + "Z"
        resp = client.post(BASE, json={"employeId": 2, "dateHeureAccident": occurred, "typeAccident": "Sur site"})
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert resp.json()["message"] == "Accident créé avec succès"
        assert data["id"] == 3
        assert data["statut"] == "Brouillon"
        assert data["delaiDeclarationRespect"] is True
        assert data["declarePar"] == "RH Manager"
        assert data["suiviCNSS"]["decision"] is None
        assert data["impactPaie"]["impactBulletin"] is False
        assert data["historique"][0]["action"] == "Création dossier"
        assert store.find("accidentsTravail", 3) is not None

    def test_create_late(self, client):
        occurred = (utc_now() - timedelta(days=3)).isoformat() + "Z"
        data = client.post(BASE, json={"dateHeureAccident": occurred, "declarePar": "Nadia"}).json()["data"]
        assert data["delaiDeclarationRespect"] is False
        assert data["historique"][0]["utilisateur"] == "Nadia"

    def test_update_appends_history(self, client, store):
        resp = client.put(f"{BASE}/1", json={"id": 9, "gravite": "Moyen", "modifiePar": "Nadia"})
        assert resp.json()["message"] == "Accident mis à jour"
        record = store.find("accidentsTravail", 1)
        assert record["gravite"] == "Moyen"
        assert record["dateCreation"] == "2024-04-15T15:00:00.000Z"
        assert record["historique"][-1]["action"] == "Modification"
        assert record["historique"][-1]["utilisateur"] == "Nadia"
        assert store.find("accidentsTravail", 9) is None

    def test_delete(self, client, store):
        resp = client.delete(f"{BASE}/2")
        assert resp.json()["message"] == "Accident supprimé"
        assert store.find("accidentsTravail", 2) is None


class TestCnss:
    def test_declare(self, client, store):
        resp = client.patch(f"{BASE}/1/declarer-cnss", json={"utilisateur": "Nadia"})
        assert resp.status_code == 200
        record = store.find("accidentsTravail", 1)
        assert record["statut"] == "Transmis CNSS"
        receipt = record["suiviCNSS"]["numeroRecepisse"]
        assert re.fullmatch(rf"CNSS-AT-{utc_now().year}-\d{{6}}", receipt)
        assert record["suiviCNSS"]["decision"] == "En cours"
        assert record["historique"][-1]["details"].endswith(receipt)

    def test_decision_required(self, client):
        resp = client.patch(f"{BASE}/1/decision-cnss", json={})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Décision CNSS requise"

    def test_accepted(self, client, store):
        client.patch(f"{BASE}/1/decision-cnss", json={"decision": "Accepté", "tauxIPP": 10, "montantIndemnite": 2500})
        record = store.find("accidentsTravail", 1)
        assert record["statut"] == "Accepté"
        assert record["suiviCNSS"]["tauxIPP"] == 10
        assert record["suiviCNSS"]["montantIndemnite"] == 2500
        assert record["historique"][-1]["details"] == "AT accepté - IPP 10%"

    def test_any_other_decision_is_refused(self, client, store):
        client.patch(f"{BASE}/1/decision-cnss", json={"decision": "Rejeté"})
        record = store.find("accidentsTravail", 1)
        assert record["statut"] == "Refusé"
        assert record["suiviCNSS"]["tauxIPP"] is None

    def test_close(self, client, store):
        resp = client.patch(f"{BASE}/2/cloturer")
        assert resp.json()["message"] == "Accident clôturé"
        record = store.find("accidentsTravail", 2)
        assert record["statut"] == "Clos"
        assert "dateCloture" in record
        assert record["historique"][-1]["utilisateur"] == "RH Manager"

    def test_action_on_missing(self, client):
        assert client.patch(f"{BASE}/99/cloturer").status_code == 404
