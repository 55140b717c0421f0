"""Stage change planning for callers that persist case moves.

The workflow engine only answers whether a move is legal. Callers that are
about to write a new stage also need the derived progress, the new status,
how long the case sat in its old stage and an audit record. The planner
assembles all of that from one case snapshot without touching storage.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import uuid

from ...common.logger import get_logger
from ..models import CaseSnapshot, CaseStatus, as_utc, utcnow
from .engine import TransitionDirection, TransitionResult, WorkflowEngine
from .stages import stage_key

logger = get_logger("workflow.transitions")

REASON_RETURN_NEEDS_JUSTIFICATION = "a reason is required to return a case to an earlier stage"
REASON_RETURN_NEEDS_OBSERVATIONS = "observations are required to return a case to an earlier stage"
REASON_CHECKLIST_INCOMPLETE = "all required checklist items must be completed"


class TransitionError(Exception):
    """Raised when a planned stage change is not allowed."""

    def __init__(self, message: str, from_stage: str, to_stage: str,
                 result: Optional[TransitionResult] = None,
                 missing_items: Tuple[str, ...] = ()):
        super().__init__(message)
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.result = result or TransitionResult(False, message)
        self.missing_items = tuple(missing_items)


@dataclass(frozen=True)
class StageChange:
    """Everything a caller needs to persist one stage move."""

    case_id: str
    from_stage: str
    to_stage: str
    direction: TransitionDirection
    progress_percentage: int
    status: CaseStatus
    changed_by: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    duration_days: int = 0
    changed_at: datetime = field(default_factory=utcnow)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the change to a dictionary for history and audit records."""
        return {
            "id": str(self.id),
            "case_id": self.case_id,
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "direction": self.direction.value,
            "progress_percentage": self.progress_percentage,
            "status": self.status.value,
            "changed_by": self.changed_by,
            "reason": self.reason,
            "notes": self.notes,
            "duration_days": self.duration_days,
            "changed_at": self.changed_at.isoformat(),
        }


StageChangeListener = Callable[[StageChange], None]


class StageChangePlanner:
    """
    Plans stage changes on top of a WorkflowEngine.

    Adds the caller-side policies the engine leaves out:
    - Backward returns must carry a reason and observations (configurable)
    - Forward moves require the current stage's checklist to be complete (configurable)
    - Listeners are notified of every planned change for auditing
    """

    def __init__(
        self,
        engine: WorkflowEngine,
        *,
        require_return_reason: bool = True,
        require_checklist: bool = True,
    ):
        """
        Initialize the planner.

        Args:
            engine: Workflow rules to validate against
            require_return_reason: Reject backward returns without a reason and observations
            require_checklist: Reject forward moves while required checklist items are open
        """
        self.engine = engine
        self.require_return_reason = require_return_reason
        self.require_checklist = require_checklist
        self._listeners: List[StageChangeListener] = []

    def register_listener(self, listener: StageChangeListener) -> None:
        """Register a callback invoked with every planned change."""
        self._listeners.append(listener)

    def plan(
        self,
        case: CaseSnapshot,
        to_stage,
        *,
        changed_by: Optional[str] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        completed_items: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> StageChange:
        """
        Plan moving a case to a new stage.

        Args:
            case: Snapshot of the case as read under the caller's write lock
            to_stage: Target stage
            changed_by: ID of the user performing the change
            reason: Justification, required for backward returns by default
            notes: Observations for the history record, also required for returns
            completed_items: Checklist items completed in the current stage
            now: Instant of the change (defaults to the current UTC time)

        Returns:
            The planned StageChange

        Raises:
            TransitionError: If the engine rejects the move, a return lacks a reason
                or observations, or a forward move leaves required items open
        """
        from_key = stage_key(case.current_stage) or str(case.current_stage)
        to_key = stage_key(to_stage) or str(to_stage)

        result = self.engine.validate_transition(case.current_stage, to_stage)
        if not result.valid:
            raise TransitionError(
                f"Cannot move case {case.id} from {from_key} to {to_key}: {result.reason}",
                from_key,
                to_key,
                result,
            )

        direction = self.engine.direction(from_key, to_key)
        if direction == TransitionDirection.BACKWARD and self.require_return_reason:
            if not _has_text(reason):
                raise TransitionError(REASON_RETURN_NEEDS_JUSTIFICATION, from_key, to_key)
            if not _has_text(notes):
                raise TransitionError(REASON_RETURN_NEEDS_OBSERVATIONS, from_key, to_key)

        if direction == TransitionDirection.FORWARD and self.require_checklist:
            missing = self.missing_checklist_items(from_key, completed_items)
            if missing:
                raise TransitionError(
                    f"{REASON_CHECKLIST_INCOMPLETE}: {', '.join(missing)}",
                    from_key,
                    to_key,
                    missing_items=missing,
                )

        changed_at = as_utc(now) if now else utcnow()
        change = StageChange(
            case_id=case.id,
            from_stage=from_key,
            to_stage=to_key,
            direction=direction,
            progress_percentage=self.engine.progress(to_key, case.progress_percentage),
            status=self.engine.status_for(to_key, case.status),
            changed_by=changed_by,
            reason=reason,
            notes=notes,
            duration_days=_whole_days(case.stage_entered_at, changed_at),
            changed_at=changed_at,
        )

        logger.debug(
            f"Planned stage change for case {case.id}: {from_key} -> {to_key} "
            f"({direction.value}, {change.progress_percentage}%)"
        )
        self._notify(change)
        return change

    def missing_checklist_items(
        self, stage, completed_items: Optional[Iterable[str]] = None
    ) -> Tuple[str, ...]:
        """Required checklist items of a stage not among the completed ones, in order."""
        completed = set(completed_items or ())
        return tuple(
            item for item in self.engine.required_checklist(stage) if item not in completed
        )

    def _notify(self, change: StageChange) -> None:
        """Run listeners; a failing listener never aborts the plan."""
        for listener in self._listeners:
            try:
                listener(change)
            except Exception:
                logger.exception(f"Stage change listener failed for case {change.case_id}")


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _whole_days(since: Optional[datetime], until: datetime) -> int:
    if since is None:
        return 0
    return max((until - as_utc(since)).days, 0)
