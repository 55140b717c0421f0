"""Case stage workflow.

Stage graph configuration, the transition rules engine and the caller-side
stage change planner.
"""

from .stages import CaseStage, StageDefinition, StageGraph, StageGraphError, default_stage_graph
from .engine import TransitionDirection, TransitionResult, WorkflowEngine
from .transitions import StageChange, StageChangePlanner, TransitionError

__all__ = [
    "CaseStage",
    "StageDefinition",
    "StageGraph",
    "StageGraphError",
    "default_stage_graph",
    "TransitionDirection",
    "TransitionResult",
    "WorkflowEngine",
    "StageChange",
    "StageChangePlanner",
    "TransitionError",
]
