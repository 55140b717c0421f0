"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest

from expropriation.core.models import (
    CaseSnapshot,
    DocumentSnapshot,
    PermissionSnapshot,
    Role,
    SecurityLevel,
    Subject,
)
from expropriation.core.workflow.engine import WorkflowEngine
from expropriation.core.workflow.stages import default_stage_graph


@pytest.fixture
def now():
    """Fixed instant used as the snapshot clock."""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def graph():
    return default_stage_graph()


@pytest.fixture
def engine(graph):
    return WorkflowEngine(graph)


@pytest.fixture
def case():
    """A case in the legal review stage managed by three distinct users."""
    return CaseSnapshot(
        id="case-1",
        current_stage="REVISION_LEGAL",
        department_id="dept-avaluos",
        created_by_id="creator",
        assigned_to_id="analyst",
        supervised_by_id="supervisor",
        progress_percentage=8,
    )


@pytest.fixture
def document():
    """An internal document uploaded by a dedicated user."""
    return DocumentSnapshot(
        id="doc-1",
        case_id="case-1",
        uploaded_by_id="uploader",
        security_level=SecurityLevel.INTERNAL,
    )


@pytest.fixture
def outsider():
    """A user with no relation to the case or document."""
    return Subject(
        user_id="outsider",
        department_id="dept-financiero",
        role=Role.from_record("observer", {"canRead": True}),
    )


@pytest.fixture
def make_snapshot(case, document, now):
    """Factory for permission snapshots with overridable parts."""

    def _make(subject, *, grants=(), shares=(), document=document, case=case, taken_at=now):
        return PermissionSnapshot(
            subject=subject,
            document=document,
            case=case,
            grants=grants,
            shares=shares,
            taken_at=taken_at,
        )

    return _make
