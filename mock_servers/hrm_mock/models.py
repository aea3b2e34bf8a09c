"""Pydantic models for the HRM mock server.

Domain records stay free-form dictionaries; these models cover the request
bodies with a fixed shape and the auth payloads.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field


RecordId = Union[int, str]


# --- Auth ---


class Role(BaseModel):
    id: RecordId
    name: str
    code: str
    description: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class UserProjection(BaseModel):
    """Public view of a stored user.

    Users are free-form records (the generic router accepts any body), so the
    user-owned fields are passed through as stored.
    """

    id: RecordId
    name: Any = None
    email: Any = None
    full_name: Any = None
    roles: Any = Field(default_factory=list)


class LoginData(TokenPair):
    user: UserProjection
    role: Role
    full_name: Any = None


class ProfileData(BaseModel):
    user: UserProjection
    role: Any = None


# --- Documents ---


class SignedDocumentUpload(BaseModel):
    fileUrl: Optional[str] = None
    fileName: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = None


# --- Groups ---


class GroupMemberInput(BaseModel):
    employeeId: RecordId
    isManager: bool = False


class GroupMembersUpdate(BaseModel):
    members: List[GroupMemberInput] = Field(default_factory=list)


# --- Employees ---


class HistoryEntryCreate(BaseModel):
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    oldValue: Any = None
    newValue: Any = None
    ref: Optional[str] = None
    createdAt: Optional[str] = None


# --- Broadcast channels ---


class CanalCreate(BaseModel):
    libelle: Optional[str] = None
    code: Optional[str] = None


# --- Advances and loans ---


class ApprovalDecision(BaseModel):
    valide_par: Any = None
    motif_refus: Optional[str] = None


class LoanStart(BaseModel):
    date_debut_remboursement: Optional[str] = None


# --- Expense reports ---


class LineAdjustment(BaseModel):
    id: Any = None
    approvedAmount: Any = None
    managerComment: Optional[str] = None


class ExpenseDecision(BaseModel):
    action: Optional[str] = None
    adjustments: List[LineAdjustment] = Field(default_factory=list)
    reason: Optional[str] = None
    comment: Optional[str] = None


# --- Skills ---


class SkillLevelInput(BaseModel):
    niveau: Any = None
    libelle: Optional[str] = None
    description: Optional[str] = None


class SkillCreate(BaseModel):
    libelle: Optional[str] = None
    categorie: Optional[str] = None
    description: Optional[str] = None
    niveaux: List[SkillLevelInput] = Field(default_factory=list)


class SkillUpdate(BaseModel):
    libelle: Optional[str] = None
    categorie: Optional[str] = None
    description: Optional[str] = None


# --- Work accidents ---


class AccidentActor(BaseModel):
    utilisateur: Optional[str] = None


class CnssDecision(BaseModel):
    decision: Optional[str] = None
    tauxIPP: Any = None
    montantIndemnite: Any = None
