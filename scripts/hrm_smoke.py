#!/usr/bin/env python3
"""HRM Mock: End-to-End Smoke Test.

Logs in as the default admin, checks the session round-trip, then creates a
settings departement twice and expects the second attempt to be refused.

Usage:
    python scripts/hrm_smoke.py
    python scripts/hrm_smoke.py --base-url http://localhost:3001 -v
"""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

# ---------------------------------------------------------------------------
# ANSI colour helpers
# ---------------------------------------------------------------------------
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BOLD = "\033[1m"
RESET = "\033[0m"


def _pass(msg: str) -> str:
    return f"{GREEN}{BOLD}PASS{RESET} {msg}"


def _fail(msg: str) -> str:
    return f"{RED}{BOLD}FAIL{RESET} {msg}"


def _info(msg: str) -> str:
    return f"{YELLOW}{msg}{RESET}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def unique_code(prefix: str = "RH") -> str:
    """Departement code that does not collide with earlier runs."""
    return f"{prefix}-{int(time.time() * 1000)}"


def login(client: httpx.Client, base_url: str, email: str, password: str) -> dict:
    """POST /login and return the envelope's ``data``."""
    resp = client.post(f"{base_url}/login", json={"email": email, "password": password})
    resp.raise_for_status()
    return resp.json()["data"]


def check_envelope(
    resp: httpx.Response, expected_status: int, expected_message: Optional[str] = None,
) -> Optional[str]:
    """Return an error description, or None when the response matches."""
    if resp.status_code != expected_status:
        return f"expected HTTP {expected_status}, got {resp.status_code}: {resp.text}"
    body = resp.json()
    if expected_message is not None and body.get("message") != expected_message:
        return f"expected message {expected_message!r}, got {body.get('message')!r}"
    return None


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

@dataclass
class Context:
    client: httpx.Client
    base_url: str
    email: str
    password: str
    verbose: bool
    access_token: str = ""
    code: str = ""


def step_login(ctx: Context) -> Optional[str]:
    data = login(ctx.client, ctx.base_url, ctx.email, ctx.password)
    if data.get("role", {}).get("code") != "ADMIN":
        return f"expected role ADMIN, got {data.get('role')}"
    ctx.access_token = data["access_token"]
    if ctx.verbose:
        print(_info(f"  user: {data.get('user')}"))
    return None


def step_me(ctx: Context) -> Optional[str]:
    resp = ctx.client.get(f"{ctx.base_url}/me", headers=bearer(ctx.access_token))
    return check_envelope(resp, 200, "Profil récupéré")


def step_create_departement(ctx: Context) -> Optional[str]:
    ctx.code = unique_code()
    resp = ctx.client.post(
        f"{ctx.base_url}/settings/departements",
        json={"code": ctx.code, "libelle": "Ressources Humaines"},
    )
    if ctx.verbose:
        print(_info(f"  {resp.status_code} {resp.text[:200]}"))
    return check_envelope(resp, 201, "Création réussie")


def step_duplicate_departement(ctx: Context) -> Optional[str]:
    resp = ctx.client.post(
        f"{ctx.base_url}/settings/departements",
        json={"code": ctx.code.lower(), "libelle": "Doublon"},
    )
    if ctx.verbose:
        print(_info(f"  {resp.status_code} {resp.text[:200]}"))
    return check_envelope(resp, 409, "Code déjà existant")


STEPS: list[tuple[str, Callable[[Context], Optional[str]]]] = [
    ("Login as admin", step_login),
    ("Profile lookup", step_me),
    ("Create settings departement", step_create_departement),
    ("Duplicate departement is refused", step_duplicate_departement),
]


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="HRM Mock: E2E Smoke Test")
    parser.add_argument(
        "--base-url",
        default="http://localhost:3001",
        help="HRM mock base URL (default: http://localhost:3001)",
    )
    parser.add_argument("--email", default="admin@example.com")
    parser.add_argument("--password", default="password")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Print full response details",
    )
    args = parser.parse_args()

    print(f"{BOLD}HRM Mock: Smoke Test{RESET}")
    print(f"  Server: {args.base_url}")

    try:
        httpx.get(f"{args.base_url}/health", timeout=5).raise_for_status()
    except (httpx.ConnectError, httpx.HTTPStatusError) as exc:
        print(f"\n{RED}Cannot reach server at {args.base_url}. Is it running?{RESET}")
        print(f"  Error: {exc}")
        sys.exit(1)

    results: list[bool] = []
    with httpx.Client(timeout=10) as client:
        ctx = Context(client, args.base_url, args.email, args.password, args.verbose)
        for num, (name, step) in enumerate(STEPS, start=1):
            label = f"[{num}/{len(STEPS)}] {name}"
            try:
                error = step(ctx)
            except httpx.HTTPError as exc:
                error = f"HTTP error: {exc}"
            print(_fail(f"{label}: {error}") if error else _pass(label))
            results.append(error is None)
            if error:
                break

    passed_count = sum(results)
    color = GREEN if passed_count == len(STEPS) else RED
    print(f"\n{BOLD}{'=' * 40}{RESET}")
    print(f"{color}{BOLD}{passed_count}/{len(STEPS)} steps passed{RESET}")
    print(f"{BOLD}{'=' * 40}{RESET}")

    sys.exit(0 if passed_count == len(STEPS) else 1)


if __name__ == "__main__":
    main()
