"""Access control gate for document actions and case stage changes."""

from .gate import (
    AccessDecision,
    AccessError,
    AccessGate,
    SnapshotUnavailableError,
    UnauthenticatedError,
)

__all__ = [
    "AccessDecision",
    "AccessError",
    "AccessGate",
    "SnapshotUnavailableError",
    "UnauthenticatedError",
]
