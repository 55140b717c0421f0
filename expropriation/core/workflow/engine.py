"""Workflow engine for case stage transitions.

Validates proposed stage moves and derives progress from stage position.
Every query is a pure function of the injected StageGraph and its
arguments: unknown stages and illegal moves are reported as values, never
raised, so callers can dry-run whole batches of transitions.
"""

from enum import Enum
from typing import List, NamedTuple, Optional

from ..models import CaseStatus
from .stages import CANCELLED, SUSPENDED, StageGraph, stage_key


class TransitionDirection(str, Enum):
    """Kind of move a valid transition represents."""

    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"
    SPECIAL = "SPECIAL"    # into the exception lane
    RESUME = "RESUME"      # out of SUSPENDED
    RESTART = "RESTART"    # out of CANCELLED


class TransitionResult(NamedTuple):
    """Outcome of validating a proposed transition."""

    valid: bool
    reason: Optional[str] = None


REASON_INVALID_STAGE = "invalid stage"
REASON_FROM_SUSPENDED = "cannot move to that stage from suspended"
REASON_FROM_CANCELLED = "cancelled cases can only restart at the first stage"
REASON_COMPLETED = "completed cases cannot re-enter the workflow"
REASON_SAME_STAGE = "not a transition"

VALID = TransitionResult(True)


class WorkflowEngine:
    """
    Stage workflow rules over a StageGraph.

    The main sequence only moves forward by default, with backward returns
    allowed until the terminal stage is reached. Special stages can be
    entered from anywhere and each has its own exit rule.
    """

    def __init__(self, graph: StageGraph):
        """
        Initialize the engine.

        Args:
            graph: Immutable stage configuration
        """
        self.graph = graph

    def index_of(self, stage) -> Optional[int]:
        return self.graph.index_of(stage)

    def is_special(self, stage) -> bool:
        return self.graph.is_special(stage)

    def is_terminal(self, stage) -> bool:
        """Check if stage is the last stage of the main sequence."""
        return stage_key(stage) == self.graph.last

    def validate_transition(self, from_stage, to_stage) -> TransitionResult:
        """
        Check whether moving a case from one stage to another is allowed.

        Args:
            from_stage: Current stage of the case
            to_stage: Proposed stage

        Returns:
            TransitionResult with a reason when the move is rejected
        """
        graph = self.graph
        if from_stage not in graph or to_stage not in graph:
            return TransitionResult(False, REASON_INVALID_STAGE)

        from_key = stage_key(from_stage)
        to_index = graph.index_of(to_stage)

        # Special stages can always be entered
        if graph.is_special(to_stage):
            return VALID

        if from_key == SUSPENDED:
            # Re-entering the very first stage from suspension is rejected
            if to_index is None or to_index <= 0:
                return TransitionResult(False, REASON_FROM_SUSPENDED)
            return VALID

        if from_key == CANCELLED:
            if stage_key(to_stage) != graph.restart_stage:
                return TransitionResult(False, REASON_FROM_CANCELLED)
            return VALID

        from_index = graph.index_of(from_stage)
        if from_index is None:
            # Any other special stage releases to the main sequence freely
            return VALID

        if to_index > from_index:
            return VALID
        if to_index < from_index:
            if self.is_terminal(from_stage):
                return TransitionResult(False, REASON_COMPLETED)
            return VALID
        return TransitionResult(False, REASON_SAME_STAGE)

    def can_transition(self, from_stage, to_stage) -> bool:
        return self.validate_transition(from_stage, to_stage).valid

    def next_stage(self, stage) -> Optional[str]:
        """Get the following main stage, or None for special/terminal/unknown stages."""
        index = self.graph.index_of(stage)
        if index is None or index == len(self.graph) - 1:
            return None
        return self.graph.main[index + 1].key

    def previous_stages(self, stage) -> List[str]:
        """Get the main stages strictly before the given one, in order."""
        index = self.graph.index_of(stage)
        if not index:
            return []
        return list(self.graph.main_keys[:index])

    def progress(self, stage, current_progress: Optional[int] = 0) -> int:
        """
        Compute the progress percentage for a stage.

        Special stages keep whatever progress the case already had; main
        stages map linearly from 0 (first) to 100 (last), rounded half up.
        """
        if self.graph.is_special(stage):
            return current_progress or 0

        index = self.graph.index_of(stage)
        if index is None:
            return 0

        span = len(self.graph) - 1
        # Exact integer form of round_half_up(index / span * 100)
        return (index * 200 + span) // (2 * span)

    def available_transitions(self, stage) -> List[str]:
        """List every stage reachable from the given one, main stages first."""
        if stage not in self.graph:
            return []
        targets = self.graph.main_keys + self.graph.special_keys
        return [t for t in targets if self.validate_transition(stage, t).valid]

    def direction(self, from_stage, to_stage) -> Optional[TransitionDirection]:
        """Classify a valid transition; None when the move is not valid."""
        if not self.validate_transition(from_stage, to_stage).valid:
            return None
        if self.graph.is_special(to_stage):
            return TransitionDirection.SPECIAL

        from_key = stage_key(from_stage)
        if from_key == SUSPENDED:
            return TransitionDirection.RESUME
        if from_key == CANCELLED:
            return TransitionDirection.RESTART

        from_index = self.graph.index_of(from_stage)
        if from_index is None:
            return TransitionDirection.RESUME
        if self.graph.index_of(to_stage) > from_index:
            return TransitionDirection.FORWARD
        return TransitionDirection.BACKWARD

    def status_for(self, stage, current_status: CaseStatus = CaseStatus.PENDIENTE) -> CaseStatus:
        """Derive the case status implied by entering a stage."""
        key = stage_key(stage)
        if key == SUSPENDED:
            return CaseStatus.SUSPENDED
        if key == CANCELLED:
            return CaseStatus.CANCELLED
        if self.is_terminal(stage):
            return CaseStatus.COMPLETADO
        current_status = CaseStatus(current_status)
        if current_status in (CaseStatus.PENDIENTE, CaseStatus.SUSPENDED, CaseStatus.CANCELLED):
            return CaseStatus.EN_PROGRESO
        return current_status

    def estimated_days(self, stage) -> int:
        definition = self.graph.definition(stage)
        return definition.estimated_days if definition else 0

    def document_types(self, stage) -> List[str]:
        definition = self.graph.definition(stage)
        return list(definition.document_types) if definition else []

    def required_checklist(self, stage) -> List[str]:
        definition = self.graph.definition(stage)
        return list(definition.required_checklist) if definition else []
