"""Tests for stage change planning."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from expropriation.core.models import CaseStatus
from expropriation.core.workflow.engine import REASON_COMPLETED, TransitionDirection, WorkflowEngine
from expropriation.core.workflow.stages import StageDefinition, StageGraph
from expropriation.core.workflow.transitions import (
    REASON_CHECKLIST_INCOMPLETE,
    REASON_RETURN_NEEDS_JUSTIFICATION,
    REASON_RETURN_NEEDS_OBSERVATIONS,
    StageChangePlanner,
    TransitionError,
)


@pytest.fixture
def planner(engine):
    return StageChangePlanner(engine)


class TestPlan:
    """Test planning stage changes from a case snapshot."""

    def test_forward_move(self, planner, case, now):
        """Test a forward move carries progress, status and audit fields."""
        change = planner.plan(case, "CUMPLIMIENTO_NORMATIVO", changed_by="analyst", now=now)

        assert change.case_id == "case-1"
        assert change.from_stage == "REVISION_LEGAL"
        assert change.to_stage == "CUMPLIMIENTO_NORMATIVO"
        assert change.direction == TransitionDirection.FORWARD
        assert change.progress_percentage == 17
        assert change.status == CaseStatus.EN_PROGRESO
        assert change.changed_by == "analyst"
        assert change.changed_at == now

    def test_invalid_move_raises(self, planner, case):
        """Test rejected moves raise with the engine's reason attached."""
        terminal = replace(case, current_stage="ENTREGA_CHEQUE")

        with pytest.raises(TransitionError) as exc_info:
            planner.plan(terminal, "AVALUO", reason="rework")

        error = exc_info.value
        assert error.from_stage == "ENTREGA_CHEQUE"
        assert error.to_stage == "AVALUO"
        assert error.result.reason == REASON_COMPLETED
        assert REASON_COMPLETED in str(error)

    def test_unknown_target_raises(self, planner, case):
        with pytest.raises(TransitionError):
            planner.plan(case, "NOT_A_STAGE")

    def test_backward_requires_reason(self, planner, case):
        """Test returning a case without justification is rejected."""
        with pytest.raises(TransitionError) as exc_info:
            planner.plan(case, "AVALUO", reason="   ")

        assert str(exc_info.value) == REASON_RETURN_NEEDS_JUSTIFICATION

    def test_backward_with_reason(self, planner, case, now):
        """Test a justified return is planned with its progress recomputed."""
        change = planner.plan(
            case, "AVALUO", reason="Missing appraisal", notes="Title pages unsigned", now=now
        )

        assert change.direction == TransitionDirection.BACKWARD
        assert change.progress_percentage == 0
        assert change.reason == "Missing appraisal"

    def test_backward_requires_observations(self, planner, case):
        """Test a return with a reason but no observations is rejected."""
        with pytest.raises(TransitionError) as exc_info:
            planner.plan(case, "AVALUO", reason="Missing appraisal", notes="")

        assert str(exc_info.value) == REASON_RETURN_NEEDS_OBSERVATIONS

    def test_backward_reason_optional_when_disabled(self, engine, case):
        """Test the reason requirement can be switched off."""
        planner = StageChangePlanner(engine, require_return_reason=False)

        change = planner.plan(case, "AVALUO")

        assert change.direction == TransitionDirection.BACKWARD

    def test_suspend_keeps_progress(self, planner, case):
        """Test suspension keeps the case's progress and marks it suspended."""
        change = planner.plan(case, "SUSPENDED", reason="Court order")

        assert change.direction == TransitionDirection.SPECIAL
        assert change.progress_percentage == case.progress_percentage
        assert change.status == CaseStatus.SUSPENDED

    def test_resume_from_suspension(self, planner, case):
        suspended = replace(case, current_stage="SUSPENDED", status=CaseStatus.SUSPENDED)

        change = planner.plan(suspended, "VALIDACION_TECNICA")

        assert change.direction == TransitionDirection.RESUME
        assert change.status == CaseStatus.EN_PROGRESO
        assert change.progress_percentage == 25

    def test_completion(self, planner, case):
        change = planner.plan(case, "ENTREGA_CHEQUE")

        assert change.progress_percentage == 100
        assert change.status == CaseStatus.COMPLETADO

    def test_duration_in_stage(self, planner, case, now):
        """Test the time spent in the previous stage is reported in whole days."""
        entered = replace(case, stage_entered_at=now - timedelta(days=3, hours=5))

        change = planner.plan(entered, "CUMPLIMIENTO_NORMATIVO", now=now)

        assert change.duration_days == 3

    def test_duration_naive_entry_time(self, planner, case, now):
        """Test naive stored timestamps are read as UTC."""
        entered = replace(case, stage_entered_at=datetime(2024, 5, 30, 12, 0))

        change = planner.plan(entered, "CUMPLIMIENTO_NORMATIVO", now=now)

        assert change.duration_days == 2

    def test_duration_without_entry_time(self, planner, case, now):
        assert planner.plan(case, "CUMPLIMIENTO_NORMATIVO", now=now).duration_days == 0

    def test_to_dict(self, planner, case, now):
        """Test conversion to a history record."""
        change = planner.plan(case, "CUMPLIMIENTO_NORMATIVO", changed_by="analyst", notes="ok", now=now)

        data = change.to_dict()

        assert data["case_id"] == "case-1"
        assert data["direction"] == "FORWARD"
        assert data["status"] == "EN_PROGRESO"
        assert data["notes"] == "ok"
        assert data["changed_at"] == now.isoformat()
        assert data["id"] == str(change.id)

    def test_unique_ids(self, planner, case):
        first = planner.plan(case, "CUMPLIMIENTO_NORMATIVO")
        second = planner.plan(case, "CUMPLIMIENTO_NORMATIVO")
        assert first.id != second.id

    def test_does_not_mutate_case(self, planner, case):
        """Test planning leaves the snapshot untouched."""
        planner.plan(case, "ENTREGA_CHEQUE")
        assert case.current_stage == "REVISION_LEGAL"
        assert case.status == CaseStatus.PENDIENTE


class TestChecklist:
    """Test the required checklist gate on forward moves."""

    @pytest.fixture
    def checklist_planner(self):
        graph = StageGraph(
            main=(
                StageDefinition("INTAKE", required_checklist=("title_verified", "appraisal_signed")),
                StageDefinition("REVIEW", required_checklist=("legal_opinion",)),
                StageDefinition("CLOSE"),
            ),
            special=(StageDefinition("SUSPENDED"), StageDefinition("CANCELLED")),
        )
        return StageChangePlanner(WorkflowEngine(graph))

    @pytest.fixture
    def intake_case(self, case):
        return replace(case, current_stage="INTAKE")

    def test_forward_blocked_by_open_items(self, checklist_planner, intake_case):
        """Test a forward move reports the items still open in the current stage."""
        with pytest.raises(TransitionError) as exc_info:
            checklist_planner.plan(intake_case, "REVIEW", completed_items=["title_verified"])

        error = exc_info.value
        assert error.missing_items == ("appraisal_signed",)
        assert REASON_CHECKLIST_INCOMPLETE in str(error)

    def test_forward_without_completed_items(self, checklist_planner, intake_case):
        with pytest.raises(TransitionError) as exc_info:
            checklist_planner.plan(intake_case, "CLOSE")

        assert exc_info.value.missing_items == ("title_verified", "appraisal_signed")

    def test_forward_with_complete_checklist(self, checklist_planner, intake_case):
        """Test completing every required item unlocks the move."""
        change = checklist_planner.plan(
            intake_case, "REVIEW",
            completed_items={"appraisal_signed", "title_verified", "extra_photo"},
        )

        assert change.direction == TransitionDirection.FORWARD
        assert change.to_stage == "REVIEW"

    def test_backward_move_exempt(self, checklist_planner, case):
        """Test returns ignore the checklist of the stage being left."""
        review = replace(case, current_stage="REVIEW")

        change = checklist_planner.plan(review, "INTAKE", reason="Rework", notes="Missing annex")

        assert change.direction == TransitionDirection.BACKWARD

    def test_special_move_exempt(self, checklist_planner, intake_case):
        change = checklist_planner.plan(intake_case, "SUSPENDED")
        assert change.direction == TransitionDirection.SPECIAL

    def test_gate_can_be_disabled(self, intake_case):
        graph = StageGraph(
            main=(StageDefinition("INTAKE", required_checklist=("title_verified",)),
                  StageDefinition("CLOSE")),
            special=(StageDefinition("SUSPENDED"), StageDefinition("CANCELLED")),
        )
        planner = StageChangePlanner(WorkflowEngine(graph), require_checklist=False)

        assert planner.plan(intake_case, "CLOSE").to_stage == "CLOSE"

    def test_missing_items_helper(self, checklist_planner):
        assert checklist_planner.missing_checklist_items("REVIEW", ["legal_opinion"]) == ()
        assert checklist_planner.missing_checklist_items("UNKNOWN") == ()

    def test_default_workflow_has_no_checklist(self, planner, case):
        assert planner.missing_checklist_items(case.current_stage) == ()


class TestListeners:
    """Test stage change listeners."""

    def test_listener_receives_change(self, planner, case):
        """Test registered listeners see every planned change."""
        seen = []
        planner.register_listener(seen.append)

        change = planner.plan(case, "CUMPLIMIENTO_NORMATIVO")

        assert seen == [change]

    def test_failing_listener_does_not_abort(self, planner, case, caplog):
        """Test listener errors are logged and the plan still succeeds."""
        def broken(change):
            raise RuntimeError("audit store down")

        seen = []
        planner.register_listener(broken)
        planner.register_listener(seen.append)

        change = planner.plan(case, "CUMPLIMIENTO_NORMATIVO")

        assert seen == [change]
        assert "listener failed" in caplog.text

    def test_listener_not_called_on_rejection(self, planner, case):
        seen = []
        planner.register_listener(seen.append)

        with pytest.raises(TransitionError):
            planner.plan(case, "REVISION_LEGAL")

        assert seen == []


def test_changed_at_defaults_to_utc(planner, case):
    change = planner.plan(case, "CUMPLIMIENTO_NORMATIVO")
    assert change.changed_at.tzinfo == timezone.utc
