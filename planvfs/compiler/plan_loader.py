"""Load plans and architecture blueprints from JSON or YAML files.

The file format is chosen by suffix: ``.json`` is parsed as JSON, anything
else as YAML (a superset of JSON). A plan file may hold the plan mapping
itself or wrap it as ``{"plan": {...}}``, the shape planners usually emit.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from planvfs.kernel.domain.blueprint import ArchitectureBlueprint
from planvfs.kernel.domain.plan import Plan
from planvfs.kernel.exceptions import PlanValidationError, ValidationError
from planvfs.kernel.logging import get_logger

logger = get_logger(__name__)


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValidationError(str(path), f"cannot parse document: {e}") from e


def parse_plan(data: Any) -> Plan:
    """Validate a decoded plan document.

    Raises
    ------
    PlanValidationError
        If the document does not describe a plan.
    """
    if isinstance(data, dict) and "steps" not in data and isinstance(data.get("plan"), dict):
        data = data["plan"]
    if not isinstance(data, dict):
        raise PlanValidationError("plan", "must be a mapping", type(data).__name__)
    try:
        return Plan.model_validate(data)
    except PydanticValidationError as e:
        raise PlanValidationError("plan", str(e)) from e


def load_plan(path: str | Path) -> Plan:
    """Read a plan from a JSON or YAML file."""
    path = Path(path)
    plan = parse_plan(_read_document(path))
    logger.debug(
        "Loaded plan '{name}' with {count} steps from {path}",
        name=plan.name,
        count=len(plan.steps),
        path=path,
    )
    return plan


def load_blueprint(path: str | Path) -> ArchitectureBlueprint:
    """Read an architecture blueprint from a JSON or YAML file.

    Accepts every shape :meth:`ArchitectureBlueprint.parse` does.
    """
    path = Path(path)
    try:
        return ArchitectureBlueprint.parse(_read_document(path))
    except (PydanticValidationError, TypeError) as e:
        raise ValidationError("blueprint", str(e)) from e


__all__ = ["load_blueprint", "load_plan", "parse_plan"]
