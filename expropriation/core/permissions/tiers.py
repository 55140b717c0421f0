"""Permission precedence tiers.

Each tier looks at one relation between the subject and the document and
either decides the capability set on its own or passes (returns None).
Tiers never consult or merge with each other; ordering is the resolver's job.
"""

from typing import Callable, Optional, Tuple

from ..models import PermissionSnapshot, SecurityLevel
from .capabilities import (
    CapabilitySet,
    PermissionSource,
    full_access,
    read_only_access,
)

Tier = Callable[[PermissionSnapshot], Optional[CapabilitySet]]


def owner_tier(snapshot: PermissionSnapshot) -> Optional[CapabilitySet]:
    """The uploader has full control of the document."""
    uploader = snapshot.document.uploaded_by_id
    if uploader is not None and uploader == snapshot.subject.user_id:
        return full_access(PermissionSource.OWNER)
    return None


def case_manager_tier(snapshot: PermissionSnapshot) -> Optional[CapabilitySet]:
    """Creator, assignee and supervisor of the owning case have full control."""
    if snapshot.subject.user_id in snapshot.case.manager_ids:
        return full_access(PermissionSource.CASE_MANAGER)
    return None


def department_tier(snapshot: PermissionSnapshot) -> Optional[CapabilitySet]:
    """Members of the owning department, and cross-department roles.

    They can work on the document but neither delete nor re-share it.
    """
    subject = snapshot.subject
    same_department = (
        subject.department_id is not None
        and subject.department_id == snapshot.case.department_id
    )
    if same_department or subject.flags.grants_department_authority:
        return CapabilitySet(
            can_view=True,
            can_edit=True,
            can_download=True,
            can_share=False,
            can_delete=False,
            can_manage_versions=True,
            source=PermissionSource.DEPARTMENT_ADMIN,
        )
    return None


def explicit_grant_tier(snapshot: PermissionSnapshot) -> Optional[CapabilitySet]:
    """An active, unexpired grant applies exactly as stored."""
    grants = snapshot.active_grants()
    if not grants:
        return None
    # (document, user) is unique upstream; AND keeps duplicates order-independent
    return CapabilitySet(
        can_view=all(g.can_view for g in grants),
        can_edit=all(g.can_edit for g in grants),
        can_download=all(g.can_download for g in grants),
        can_share=all(g.can_share for g in grants),
        can_delete=all(g.can_delete for g in grants),
        can_manage_versions=False,
        source=PermissionSource.EXPLICIT_PERMISSION,
    )


def share_tier(snapshot: PermissionSnapshot) -> Optional[CapabilitySet]:
    """An active, unexpired share gives read access."""
    if snapshot.active_shares():
        return read_only_access(PermissionSource.SHARE)
    return None


def public_tier(snapshot: PermissionSnapshot) -> Optional[CapabilitySet]:
    """Public documents are readable by anyone."""
    level = snapshot.document.security_level
    if getattr(level, "value", level) == SecurityLevel.PUBLIC.value:
        return read_only_access(PermissionSource.PUBLIC_ACCESS)
    return None


DEFAULT_TIERS: Tuple[Tier, ...] = (
    owner_tier,
    case_manager_tier,
    department_tier,
    explicit_grant_tier,
    share_tier,
    public_tier,
)
