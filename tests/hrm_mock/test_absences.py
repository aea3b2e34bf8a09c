"""Tests for absence types and the absence listing and status actions."""

from __future__ import annotations

import pytest

from mock_servers.hrm_mock.routes.absences import filter_absences


class TestAbsenceTypes:
    def test_sorted_by_order(self, client):
        rows = client.get("/absence-types").json()["data"]
        assert [r["code"] for r in rows] == ["MAL", "CP", "SS"]

    def test_simple_list_skips_inactive(self, client):
        rows = client.get("/absence-types/simple-list").json()["data"]
        assert rows == [
            {"id": 2, "code": "MAL", "libelle": "Maladie"},
            {"id": 1, "code": "CP", "libelle": "Congé payé"},
        ]


class TestAbsenceList:
    def test_enriched_page(self, client):
        body = client.get("/absences").json()
        assert body["message"] == "Liste des absences récupérée avec succès"
        assert body["recordsTotal"] == 3
        first = body["data"][0]
        assert first["type_absence"]["code"] == "CP"
        assert first["employee"] == {"id": 3, "firstName": "Karim", "lastName": "Tazi", "matricule": "EMP-003"}

    @pytest.mark.parametrize(
        "params, expected",
        [
            ({"employeeId": "3"}, [1, 3]),
            ({"employe": "4"}, [2]),
            ({"type_absence_id": "2"}, [2, 3]),
            ({"statut": "VALIDEE"}, [2]),
            ({"from": "2024-09-01", "to": "2024-09-30"}, [2]),
            ({"from": "2024-10-01"}, [3]),
        ],
    )
    def test_filters(self, client, params, expected):
        body = client.get("/absences", params=params).json()
        assert [r["id"] for r in body["data"]] == expected
        assert body["recordsFiltered"] == len(expected)
        assert body["recordsTotal"] == 3

    def test_named_filters_are_not_column_filters(self, client):
        # ``status`` is an alias, never a literal column match.
        body = client.get("/absences", params={"status": "en_attente"}).json()
        assert [r["id"] for r in body["data"]] == [1, 3]

    def test_unknown_employee_is_none(self, client, store):
        store.insert("absences", {"id": 9, "employeeId": 99, "type_absence_id": 1})
        rows = client.get("/absences", params={"employeeId": "99"}).json()["data"]
        assert rows[0]["employee"] is None

    def test_period_overlap_keeps_open_ended(self):
        rows = [{"id": 1, "date_debut": "2024-01-01"}, {"id": 2, "date_fin": "2023-01-01"}]
        kept = filter_absences(rows, {"from": "2024-06-01"})
        assert [r["id"] for r in kept] == [1]


class TestAbsenceActions:
    @pytest.mark.parametrize(
        "action, status, message",
        [
            ("cancel", "annulee", "Absence annulée"),
            ("validate", "validee", "Absence validée"),
            ("close", "cloture", "Absence clôturée"),
        ],
    )
    def test_status_change(self, client, store, action, status, message):
        resp = client.patch(f"/absences/1/{action}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == message
        assert body["data"]["statut"] == status
        assert store.find("absences", 1)["statut"] == status
        assert "updatedAt" in store.find("absences", 1)

    def test_missing(self, client):
        resp = client.patch("/absences/99/validate")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Absence introuvable"

    def test_single_absence_through_generic_router(self, client):
        assert client.get("/absences/2").json()["data"]["statut"] == "validee"
