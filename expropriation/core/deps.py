"""Process-level wiring of the engines.

Each builder takes explicit settings so tests can construct isolated
instances; the cached ``get_*`` providers hand out the single instances
built at process start and work as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Optional

from ..common.config import load_stage_graph
from ..common.logger import get_logger, setup_logger
from .access.gate import AccessGate
from .config import Settings, get_settings
from .permissions.resolver import PermissionResolver
from .workflow.engine import WorkflowEngine
from .workflow.stages import StageGraph, default_stage_graph
from .workflow.transitions import StageChangePlanner

logger = get_logger("deps")


def build_stage_graph(settings: Optional[Settings] = None) -> StageGraph:
    """Load the configured stage graph, or the built-in workflow."""
    settings = settings or get_settings()
    if settings.workflow_config_path:
        logger.info(f"Loading workflow from {settings.workflow_config_path}")
        return load_stage_graph(settings.workflow_config_path)
    return default_stage_graph()


def build_workflow_engine(settings: Optional[Settings] = None) -> WorkflowEngine:
    return WorkflowEngine(build_stage_graph(settings))


def build_stage_planner(
    settings: Optional[Settings] = None,
    engine: Optional[WorkflowEngine] = None,
) -> StageChangePlanner:
    settings = settings or get_settings()
    return StageChangePlanner(
        engine or build_workflow_engine(settings),
        require_return_reason=settings.require_return_reason,
        require_checklist=settings.require_checklist,
    )


def build_access_gate(settings: Optional[Settings] = None) -> AccessGate:
    settings = settings or get_settings()
    return AccessGate(PermissionResolver(), bypass_roles=settings.bypass_roles_list)


def configure_logging(settings: Optional[Settings] = None):
    """Attach handlers to the package logger according to settings."""
    settings = settings or get_settings()
    return setup_logger(
        log_dir=settings.log_dir,
        level="DEBUG" if settings.debug else settings.log_level,
        file_logging=settings.file_logging,
    )


@lru_cache
def get_workflow_engine() -> WorkflowEngine:
    """Workflow engine dependency."""
    return build_workflow_engine()


@lru_cache
def get_stage_planner() -> StageChangePlanner:
    """Stage change planner dependency."""
    return build_stage_planner(engine=get_workflow_engine())


@lru_cache
def get_access_gate() -> AccessGate:
    """Access gate dependency."""
    return build_access_gate()
