"""Exports for the shared HRM response envelopes."""

from __future__ import annotations

from .common import Envelope
from .common import EnvelopeStatus
from .common import PaginatedEnvelope

__all__ = [
  "Envelope",
  "EnvelopeStatus",
  "PaginatedEnvelope",
]
