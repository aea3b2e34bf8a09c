"""Tests for the smoke script, run against the in-process app."""

from __future__ import annotations

import httpx

from scripts.hrm_smoke import (
    STEPS,
    Context,
    bearer,
    check_envelope,
    unique_code,
)


def _response(status_code: int, json_data: dict) -> httpx.Response:
    resp = httpx.Response(status_code, json=json_data)
    resp._request = httpx.Request("GET", "http://test")
    return resp


class TestHelpers:
    def test_bearer(self):
        assert bearer("abc") == {"Authorization": "Bearer abc"}

    def test_unique_code(self):
        assert unique_code().startswith("RH-")

    def test_check_envelope_ok(self):
        assert check_envelope(_response(201, {"message": "Création réussie"}), 201, "Création réussie") is None

    def test_check_envelope_status_mismatch(self):
        assert "expected HTTP 409" in check_envelope(_response(201, {}), 409)

    def test_check_envelope_message_mismatch(self):
        error = check_envelope(_response(409, {"message": "Conflit"}), 409, "Code déjà existant")
        assert "Code déjà existant" in error


def test_smoke_scenario_in_process(client):
    """Every step passes against a fresh app; TestClient is an httpx.Client."""
    ctx = Context(client, "", "admin@example.com", "password", verbose=False)
    for name, step in STEPS:
        assert step(ctx) is None, name
    assert ctx.access_token
