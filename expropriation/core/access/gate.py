"""Authorization gate for document actions and stage changes.

Combines the permission resolver with coarse role bypass to answer yes/no
questions for one action. The gate never logs decisions to the audit trail;
that is the caller's job.
"""

from enum import Enum
from typing import Callable, Iterable, Optional, Union

from fastapi import HTTPException, status

from ...common.logger import get_logger
from ..models import CaseSnapshot, PermissionSnapshot, Subject, normalize_role_name
from ..permissions.capabilities import Capability
from ..permissions.resolver import PermissionResolver

logger = get_logger("access")

DEFAULT_BYPASS_ROLES = ("super_admin",)

ROLE_DEPARTMENT_ADMIN = "department_admin"
ROLE_SUPERVISOR = "supervisor"
ROLE_ANALYST = "analyst"


class AccessDecision(str, Enum):
    """Outcome of an authorization check."""

    ALLOW = "allow"
    DENY = "deny"


class AccessError(Exception):
    """Raised when the inputs for an access decision cannot be gathered."""


class SnapshotUnavailableError(AccessError):
    """The store could not supply a consistent permission snapshot."""


class UnauthenticatedError(AccessError):
    """No authenticated subject is attached to the request."""


SnapshotLoader = Callable[[], PermissionSnapshot]
Action = Union[str, Capability]


class AccessGate:
    """Answers allow/deny for a subject acting on a document."""

    def __init__(
        self,
        resolver: Optional[PermissionResolver] = None,
        *,
        bypass_roles: Iterable[str] = DEFAULT_BYPASS_ROLES,
    ):
        """
        Initialize the gate.

        Args:
            resolver: Permission resolver (default precedence chain if omitted)
            bypass_roles: Role names that are always allowed
        """
        self.resolver = resolver or PermissionResolver()
        self.bypass_roles = frozenset(normalize_role_name(r) for r in bypass_roles)

    def is_bypass(self, subject: Optional[Subject]) -> bool:
        """Check if the subject carries a global bypass role."""
        if subject is None or subject.role is None:
            return False
        return subject.role.normalized_name in self.bypass_roles

    def authorize(self, snapshot: PermissionSnapshot, action: Action) -> AccessDecision:
        """
        Decide whether the snapshot's subject may perform an action.

        Bypass roles are allowed before any resolution work is done.

        Args:
            snapshot: Consistent read of subject, document, case, grants, shares
            action: Capability or its name (``"view"``, ``"can_edit"``...)

        Returns:
            AccessDecision

        Raises:
            ValueError: If the action is not a known capability
            UnauthenticatedError: If the snapshot has no subject
        """
        capability = Capability.parse(action)
        if snapshot.subject is None:
            raise UnauthenticatedError("Authentication required")

        if self.is_bypass(snapshot.subject):
            return AccessDecision.ALLOW

        effective = self.resolver.resolve(snapshot)
        if effective.allows(capability):
            return AccessDecision.ALLOW
        return AccessDecision.DENY

    def is_allowed(self, snapshot: PermissionSnapshot, action: Action) -> bool:
        return self.authorize(snapshot, action) == AccessDecision.ALLOW

    def authorize_loaded(self, load_snapshot: SnapshotLoader, action: Action) -> AccessDecision:
        """
        Load a snapshot and authorize, failing closed.

        Any error while gathering the snapshot (store unreachable, missing
        session, inconsistent data) is logged and turned into DENY, so a
        partial read can never produce an allow.

        Args:
            load_snapshot: Caller-supplied loader doing one consistent read
            action: Capability or its name

        Returns:
            AccessDecision
        """
        capability = Capability.parse(action)
        try:
            snapshot = load_snapshot()
            if snapshot is None:
                raise SnapshotUnavailableError("Snapshot loader returned nothing")
            return self.authorize(snapshot, capability)
        except Exception:
            logger.exception(f"Denying {capability.value}: permission snapshot unavailable")
            return AccessDecision.DENY

    def require(self, snapshot: PermissionSnapshot, action: Action) -> None:
        """
        Enforce an action inside an API handler.

        Raises:
            HTTPException: 401 without a subject, 403 when denied
        """
        capability = Capability.parse(action)
        try:
            decision = self.authorize(snapshot, capability)
        except UnauthenticatedError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
            )
        if decision != AccessDecision.ALLOW:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient document permissions. Required: {capability.value}",
            )

    def can_change_stage(self, subject: Optional[Subject], case: CaseSnapshot) -> bool:
        """
        Check whether a subject may move a case between stages.

        Access rules:
        - Bypass roles: always
        - Department admin: cases of their own department
        - Supervisor: cases they supervise
        - Analyst: cases assigned to them
        """
        if subject is None or subject.role is None:
            return False
        if self.is_bypass(subject):
            return True

        role = subject.role.normalized_name
        if role == ROLE_DEPARTMENT_ADMIN:
            return subject.department_id is not None and subject.department_id == case.department_id
        if role == ROLE_SUPERVISOR:
            return case.supervised_by_id is not None and case.supervised_by_id == subject.user_id
        if role == ROLE_ANALYST:
            return case.assigned_to_id is not None and case.assigned_to_id == subject.user_id
        return False
