"""Workflow configuration loading.

Reads a YAML file describing the stage graph, for example::

    workflow:
      main_stages:
        - key: AVALUO
          label: Avalúo
          estimated_days: 10
          document_types: [LEGAL_DOCUMENT, PHOTOGRAPH]
          required_checklist: [title_verified, appraisal_signed]
        - REVISION_LEGAL
        - ENTREGA_CHEQUE
      special_stages:
        - SUSPENDED
        - CANCELLED

Entries are either a bare stage key or a mapping with stage metadata.
Environment variables in string values are expanded.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from ..core.workflow.stages import (
    DocumentType,
    StageDefinition,
    StageGraph,
    StageGraphError,
)


def parse_stage_definition(entry: Union[str, Dict[str, Any]]) -> StageDefinition:
    """Parse a single stage entry.

    Args:
        entry: Stage key string or stage mapping

    Returns:
        StageDefinition instance

    Raises:
        StageGraphError: If the entry is malformed
    """
    if isinstance(entry, str):
        return StageDefinition(entry)

    if not isinstance(entry, dict) or "key" not in entry:
        raise StageGraphError(f"Stage entry must be a key or a mapping with 'key': {entry!r}")

    document_types = []
    for doc_type in entry.get("document_types", []) or []:
        try:
            document_types.append(DocumentType(doc_type).value)
        except ValueError:
            raise StageGraphError(
                f"Unknown document type {doc_type!r} for stage {entry['key']}"
            ) from None

    checklist = entry.get("required_checklist", []) or []
    if not isinstance(checklist, list) or not all(isinstance(i, str) and i for i in checklist):
        raise StageGraphError(
            f"required_checklist for stage {entry['key']} must be a list of item names"
        )

    try:
        estimated_days = int(entry.get("estimated_days", 0) or 0)
    except (TypeError, ValueError):
        raise StageGraphError(
            f"estimated_days for stage {entry['key']} must be an integer"
        ) from None

    return StageDefinition(
        key=entry["key"],
        label=entry.get("label", "") or "",
        description=entry.get("description", "") or "",
        estimated_days=estimated_days,
        document_types=tuple(document_types),
        required_checklist=tuple(checklist),
    )


def _parse_stage_list(entries: Any, field_name: str) -> List[StageDefinition]:
    if not isinstance(entries, list):
        raise StageGraphError(f"workflow.{field_name} must be a list")
    return [parse_stage_definition(entry) for entry in entries]


def parse_stage_graph(config_dict: Dict[str, Any]) -> StageGraph:
    """Parse the workflow section of a configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        StageGraph instance

    Raises:
        StageGraphError: If the workflow section is missing or inconsistent
    """
    workflow = config_dict.get("workflow")
    if not isinstance(workflow, dict):
        raise StageGraphError("Configuration has no 'workflow' section")

    return StageGraph(
        main=tuple(_parse_stage_list(workflow.get("main_stages"), "main_stages")),
        special=tuple(_parse_stage_list(workflow.get("special_stages"), "special_stages")),
    )


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        TypeError: If the document root is not a mapping
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_stage_graph(config_path: str) -> StageGraph:
    """Load a YAML workflow file into a StageGraph.

    Args:
        config_path: Path to configuration file

    Returns:
        StageGraph instance
    """
    return parse_stage_graph(load_config(config_path))
