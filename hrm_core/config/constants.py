"""Shared constants for the HRM mock server."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

CONTRACT_TYPES: tuple[str, ...] = (
  "Consultance",
  "Freelance",
  "Teletravail",
  "Interim",
  "Stage_Initiation",
  "Stage_PFE",
  "Apprentissage",
  "TAHIL",
  "SIVP",
  "ANAPEC",
  "CDD_Temporaire",
  "CDD_Saisonnier",
  "CDD",
  "CDI",
)

# Query keys consumed by the DataTables listing contract; every other key is a
# field filter.
PAGINATION_KEYS: frozenset[str] = frozenset(
  {"start", "length", "sortBy", "sortDir"}
)

DEFAULT_PAGE_LENGTH: int = 10

ADMIN_ROLE: Mapping[str, Any] = MappingProxyType(
  {
    "id": 1,
    "name": "Admin",
    "code": "ADMIN",
    "description": "Administrator",
  }
)

DEFAULT_ADMIN_USER: Mapping[str, Any] = MappingProxyType(
  {
    "id": 1,
    "email": "admin@example.com",
    "password": "password",
    "name": "Admin User",
    "full_name": "Admin User",
  }
)
