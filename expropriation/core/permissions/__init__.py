"""Document permission resolution.

Capability model, precedence tiers and the resolver that picks exactly one
authoritative permission source per subject and document.
"""

from .capabilities import (
    Capability,
    CapabilitySet,
    PermissionSource,
    NO_ACCESS,
    full_access,
    read_only_access,
)
from .tiers import DEFAULT_TIERS
from .resolver import PermissionResolver, resolve_effective_permission

__all__ = [
    "Capability",
    "CapabilitySet",
    "PermissionSource",
    "NO_ACCESS",
    "full_access",
    "read_only_access",
    "DEFAULT_TIERS",
    "PermissionResolver",
    "resolve_effective_permission",
]
