"""Response envelopes shared by every HRM mock endpoint."""

from __future__ import annotations

from typing import Generic
from typing import Literal
from typing import TypeVar

from pydantic import BaseModel
from pydantic import Field
from pydantic import model_validator

_T = TypeVar("_T")

EnvelopeStatus = Literal["success", "error"]


class Envelope(BaseModel, Generic[_T]):
  """The uniform `{status, message, data}` wrapper."""

  status: EnvelopeStatus = "success"
  message: str = ""
  data: _T | None = None

  @model_validator(mode="after")
  def _validate_payload(self) -> Envelope[_T]:
    if self.status == "error" and self.data is not None:
      raise ValueError("An error envelope cannot carry data.")
    return self

  @classmethod
  def success(cls, message: str, data: _T | None = None) -> Envelope[_T]:
    return cls(status="success", message=message, data=data)

  @classmethod
  def error(cls, message: str) -> Envelope[_T]:
    return cls(status="error", message=message, data=None)


class PaginatedEnvelope(Envelope[list[_T]], Generic[_T]):
  """DataTables-style server-side pagination envelope."""

  data: list[_T] = Field(default_factory=list)
  recordsTotal: int = Field(default=0, ge=0)
  recordsFiltered: int = Field(default=0, ge=0)

  @model_validator(mode="after")
  def _validate_counts(self) -> PaginatedEnvelope[_T]:
    if self.recordsFiltered > self.recordsTotal:
      raise ValueError("recordsFiltered cannot exceed recordsTotal.")
    if len(self.data) > self.recordsFiltered:
      raise ValueError("A page cannot hold more rows than recordsFiltered.")
    return self
