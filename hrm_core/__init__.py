"""HRM mock backend shared package: configuration and response schemas."""

from __future__ import annotations

from .config.settings import HRMSettings, get_settings

__all__ = [
    "HRMSettings",
    "get_settings",
]
