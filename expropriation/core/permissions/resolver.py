"""Effective document permission resolution.

Walks the precedence tiers in order over one permission snapshot; the
first tier that claims the decision wins and no lower tier is consulted.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ...common.logger import get_logger
from ..models import (
    CaseSnapshot,
    DocumentShare,
    DocumentSnapshot,
    PermissionGrant,
    PermissionSnapshot,
    Subject,
    utcnow,
)
from .capabilities import NO_ACCESS, CapabilitySet
from .tiers import DEFAULT_TIERS, Tier

logger = get_logger("permissions")


class PermissionResolver:
    """
    Computes a subject's effective capabilities on a document.

    The result depends only on the snapshot: tie-breaking is by tier order,
    and every expiry is judged against the snapshot's single ``taken_at``.
    Absence of any matching tier is a normal result with source ``none``.
    """

    def __init__(self, tiers: Sequence[Tier] = DEFAULT_TIERS):
        """
        Initialize the resolver.

        Args:
            tiers: Precedence chain, highest priority first
        """
        self.tiers = tuple(tiers)

    def resolve(self, snapshot: PermissionSnapshot) -> CapabilitySet:
        """
        Resolve effective capabilities from a consistent snapshot.

        Args:
            snapshot: Subject, document, case, grants and shares read together

        Returns:
            CapabilitySet tagged with the deciding source
        """
        for tier in self.tiers:
            result = tier(snapshot)
            if result is not None:
                logger.debug(
                    f"User {snapshot.subject.user_id} on document {snapshot.document.id}: "
                    f"{result.source.value}"
                )
                return result

        logger.debug(
            f"User {snapshot.subject.user_id} on document {snapshot.document.id}: no access"
        )
        return NO_ACCESS

    def resolve_effective_permission(
        self,
        subject: Subject,
        document: DocumentSnapshot,
        case: CaseSnapshot,
        *,
        grants: Iterable[PermissionGrant] = (),
        shares: Iterable[DocumentShare] = (),
        now: Optional[datetime] = None,
    ) -> CapabilitySet:
        """Build a snapshot from loose parts and resolve it."""
        snapshot = PermissionSnapshot(
            subject=subject,
            document=document,
            case=case,
            grants=tuple(grants),
            shares=tuple(shares),
            taken_at=now or utcnow(),
        )
        return self.resolve(snapshot)


def resolve_effective_permission(
    subject: Subject,
    document: DocumentSnapshot,
    case: CaseSnapshot,
    *,
    grants: Iterable[PermissionGrant] = (),
    shares: Iterable[DocumentShare] = (),
    now: Optional[datetime] = None,
) -> CapabilitySet:
    """Resolve with the default precedence chain."""
    return PermissionResolver().resolve_effective_permission(
        subject, document, case, grants=grants, shares=shares, now=now
    )
