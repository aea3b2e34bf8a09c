"""Shared HRM configuration exports."""

from __future__ import annotations

from .constants import ADMIN_ROLE
from .constants import CONTRACT_TYPES
from .constants import DEFAULT_ADMIN_USER
from .constants import DEFAULT_PAGE_LENGTH
from .constants import PAGINATION_KEYS
from .settings import HRMSettings
from .settings import get_settings

__all__ = [
  "ADMIN_ROLE",
  "CONTRACT_TYPES",
  "DEFAULT_ADMIN_USER",
  "DEFAULT_PAGE_LENGTH",
  "PAGINATION_KEYS",
  "HRMSettings",
  "get_settings",
]
