"""Loading of plans, blueprints and configuration from files."""

from planvfs.compiler.config_loader import load_config
from planvfs.compiler.plan_loader import load_blueprint, load_plan, parse_plan

__all__ = ["load_blueprint", "load_config", "load_plan", "parse_plan"]
