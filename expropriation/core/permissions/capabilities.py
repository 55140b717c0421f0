"""Document capability model.

A subject's effective access to a document is a fixed set of six boolean
capabilities plus the tag of the single permission source that produced it.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, NamedTuple, Union


class Capability(str, Enum):
    """Actions that can be performed on a document."""

    VIEW = "view"
    EDIT = "edit"
    DOWNLOAD = "download"
    SHARE = "share"
    DELETE = "delete"
    MANAGE_VERSIONS = "manage_versions"

    @classmethod
    def parse(cls, action: Union[str, "Capability"]) -> "Capability":
        """Accept a Capability, its value, or its ``can_*`` field name."""
        if isinstance(action, Capability):
            return action
        name = str(action).strip().lower()
        if name.startswith("can_"):
            name = name[len("can_"):]
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown document action: {action}") from None


class PermissionSource(str, Enum):
    """Which precedence tier decided a capability set."""

    OWNER = "owner"
    CASE_MANAGER = "case_manager"
    DEPARTMENT_ADMIN = "department_admin"
    EXPLICIT_PERMISSION = "explicit_permission"
    SHARE = "share"
    PUBLIC_ACCESS = "public_access"
    NONE = "none"


class CapabilitySet(NamedTuple):
    """Effective capabilities of one subject on one document."""

    can_view: bool
    can_edit: bool
    can_download: bool
    can_share: bool
    can_delete: bool
    can_manage_versions: bool
    source: PermissionSource

    def allows(self, capability: Union[str, Capability]) -> bool:
        """Check whether a single capability is granted."""
        return getattr(self, f"can_{Capability.parse(capability).value}")

    @property
    def granted(self) -> FrozenSet[Capability]:
        return frozenset(c for c in Capability if self.allows(c))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase payload API clients expect."""
        return {
            "canView": self.can_view,
            "canEdit": self.can_edit,
            "canDownload": self.can_download,
            "canShare": self.can_share,
            "canDelete": self.can_delete,
            "canManageVersions": self.can_manage_versions,
            "source": self.source.value,
        }


def full_access(source: PermissionSource) -> CapabilitySet:
    """Every capability granted."""
    return CapabilitySet(True, True, True, True, True, True, source)


def read_only_access(source: PermissionSource) -> CapabilitySet:
    """View and download only."""
    return CapabilitySet(
        can_view=True,
        can_edit=False,
        can_download=True,
        can_share=False,
        can_delete=False,
        can_manage_versions=False,
        source=source,
    )


NO_ACCESS = CapabilitySet(False, False, False, False, False, False, PermissionSource.NONE)
