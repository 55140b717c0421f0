"""Snapshot entities handed to the engines.

Cases, documents, grants and shares are owned by the persistence layer.
Callers read them once, wrap them in these frozen values and pass them in;
the engines only ever read them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator


class SecurityLevel(str, Enum):
    """Document classification."""

    PUBLIC = "PUBLIC"
    INTERNAL = "INTERNAL"
    CONFIDENTIAL = "CONFIDENTIAL"
    RESTRICTED = "RESTRICTED"


class CaseStatus(str, Enum):
    """Coarse case status derived from the current stage."""

    PENDIENTE = "PENDIENTE"
    EN_PROGRESO = "EN_PROGRESO"
    COMPLETADO = "COMPLETADO"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


class RolePolicyError(ValueError):
    """Raised when stored role flags cannot be interpreted."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored and live instants compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    """An expiry equal to ``now`` is still valid."""
    if expires_at is None:
        return False
    return as_utc(expires_at) < as_utc(now)


def normalize_role_name(name: str) -> str:
    """Canonical role key: trimmed, lowercase, spaces as underscores."""
    return name.strip().lower().replace(" ", "_")


class RoleFlags(BaseModel):
    """Typed view of a role's stored permission flags.

    Role records keep an open JSON map; only the flags that widen document
    access are read, once, when the role is loaded.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    admin: StrictBool = False
    all_departments: StrictBool = Field(False, alias="allDepartments")
    view_all_cases: StrictBool = Field(False, alias="viewAllCases")

    @field_validator("*", mode="before")
    @classmethod
    def _null_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @classmethod
    def from_permissions(cls, raw: Optional[Mapping[str, Any]]) -> "RoleFlags":
        """
        Validate a raw role permission map.

        Args:
            raw: JSON object stored on the role, or None

        Returns:
            RoleFlags instance

        Raises:
            RolePolicyError: If the map is not an object or a flag is not boolean
        """
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise RolePolicyError(
                f"Role permissions must be a mapping, got {type(raw).__name__}"
            )
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as exc:
            raise RolePolicyError(f"Invalid role permissions: {exc}") from exc

    @property
    def grants_department_authority(self) -> bool:
        """True when the role sees documents outside its own department."""
        return self.admin or self.all_departments or self.view_all_cases


@dataclass(frozen=True)
class Role:
    """Role of the acting user."""

    name: str
    flags: RoleFlags = field(default_factory=RoleFlags)

    @classmethod
    def from_record(cls, name: str, permissions: Optional[Mapping[str, Any]] = None) -> "Role":
        """Build a role from a stored name and raw permission map."""
        return cls(name=name, flags=RoleFlags.from_permissions(permissions))

    @property
    def normalized_name(self) -> str:
        return normalize_role_name(self.name)


@dataclass(frozen=True)
class Subject:
    """The authenticated actor."""

    user_id: str
    department_id: Optional[str] = None
    role: Optional[Role] = None

    @property
    def flags(self) -> RoleFlags:
        return self.role.flags if self.role else RoleFlags()


@dataclass(frozen=True)
class CaseSnapshot:
    """A case as read from the store."""

    id: str
    current_stage: str
    department_id: Optional[str] = None
    created_by_id: Optional[str] = None
    assigned_to_id: Optional[str] = None
    supervised_by_id: Optional[str] = None
    progress_percentage: int = 0
    status: CaseStatus = CaseStatus.PENDIENTE
    stage_entered_at: Optional[datetime] = None

    def __post_init__(self):
        if not 0 <= self.progress_percentage <= 100:
            raise ValueError(
                f"progress_percentage must be within 0..100, got {self.progress_percentage}"
            )

    @property
    def manager_ids(self) -> Tuple[str, ...]:
        """Creator, assignee and supervisor, skipping unset roles."""
        ids = (self.created_by_id, self.assigned_to_id, self.supervised_by_id)
        return tuple(i for i in ids if i is not None)


@dataclass(frozen=True)
class DocumentSnapshot:
    """A document attached to a case."""

    id: str
    case_id: str
    uploaded_by_id: Optional[str] = None
    security_level: SecurityLevel = SecurityLevel.INTERNAL


@dataclass(frozen=True)
class PermissionGrant:
    """Explicit, possibly time-limited access for one user on one document."""

    document_id: str
    user_id: str
    can_view: bool = False
    can_edit: bool = False
    can_download: bool = False
    can_share: bool = False
    can_delete: bool = False
    expires_at: Optional[datetime] = None
    is_active: bool = True

    def is_effective(self, now: datetime) -> bool:
        return self.is_active and not is_expired(self.expires_at, now)


@dataclass(frozen=True)
class DocumentShare:
    """Read-oriented distribution of a document to one recipient."""

    document_id: str
    shared_with_id: str
    is_active: bool = True
    expires_at: Optional[datetime] = None
    shared_by_id: Optional[str] = None

    def is_effective(self, now: datetime) -> bool:
        return self.is_active and not is_expired(self.expires_at, now)


@dataclass(frozen=True)
class PermissionSnapshot:
    """
    One consistent read of everything a permission decision depends on.

    ``taken_at`` is the single instant every expiry in the resolution is
    judged against.
    """

    subject: Subject
    document: DocumentSnapshot
    case: CaseSnapshot
    grants: Tuple[PermissionGrant, ...] = ()
    shares: Tuple[DocumentShare, ...] = ()
    taken_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        object.__setattr__(self, "grants", tuple(self.grants))
        object.__setattr__(self, "shares", tuple(self.shares))
        object.__setattr__(self, "taken_at", as_utc(self.taken_at))
        if self.document.case_id != self.case.id:
            raise ValueError(
                f"Document {self.document.id} does not belong to case {self.case.id}"
            )

    def active_grants(self) -> Tuple[PermissionGrant, ...]:
        """Grants for this subject on this document that are live at ``taken_at``."""
        return tuple(
            g for g in self.grants
            if g.document_id == self.document.id
            and g.user_id == self.subject.user_id
            and g.is_effective(self.taken_at)
        )

    def active_shares(self) -> Tuple[DocumentShare, ...]:
        """Shares to this subject on this document that are live at ``taken_at``."""
        return tuple(
            s for s in self.shares
            if s.document_id == self.document.id
            and s.shared_with_id == self.subject.user_id
            and s.is_effective(self.taken_at)
        )
