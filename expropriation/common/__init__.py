"""Common utilities for the expropriation engines."""

from .logger import setup_logger, get_logger
from .config import load_config, load_stage_graph

__all__ = ["get_logger", "load_config", "load_stage_graph", "setup_logger"]
