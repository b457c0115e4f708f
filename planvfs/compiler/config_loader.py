"""Configuration loader for planvfs.

Config sources, in discovery order:

1. An explicit path: ``planvfs.toml``, a ``pyproject.toml`` or a
   ``kind: Config`` YAML manifest.
2. The ``PLANVFS_CONFIG_PATH`` environment variable.
3. ``planvfs.toml`` in the working directory.
4. ``pyproject.toml`` with a ``[tool.planvfs]`` table in the working directory
   or one of its parents.

Without any of these the defaults apply. String values may reference
environment variables as ``${VAR}``; ``PLANVFS_*`` variables override
individual settings.
"""

from __future__ import annotations

import os
import re
import tomllib
from pathlib import Path
from typing import Any

import yaml

from planvfs.kernel.config.models import ExecutorConfig, LoggingConfig, PlanVFSConfig, VfsConfig
from planvfs.kernel.exceptions import ConfigurationError, ValidationError
from planvfs.kernel.logging import get_logger

# Constants for boolean environment variable parsing
_TRUTHY_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
_FALSY_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

logger = get_logger(__name__)


def _parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable value.

    Raises
    ------
    ValueError
        If value is not a recognized boolean string

    Examples
    --------
    >>> _parse_bool_env("Yes")
    True
    >>> _parse_bool_env("off")
    False
    """
    normalized = value.lower().strip()
    if normalized in _TRUTHY_VALUES:
        return True
    if normalized in _FALSY_VALUES:
        return False
    expected = sorted(_TRUTHY_VALUES | _FALSY_VALUES)
    raise ValueError(f"Invalid boolean value: {value!r}. Expected one of: {expected}")


class ConfigLoader:
    """Loads and processes planvfs configuration files."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def load(self, path: str | Path | None = None) -> PlanVFSConfig:
        """Load configuration, falling back to defaults when nothing is found.

        Raises
        ------
        FileNotFoundError
            If an explicit ``path`` does not exist.
        ConfigurationError
            If the file content is invalid.
        """
        config_path = self._find_config_file(path)
        if config_path is None:
            logger.debug("No configuration file found, using defaults")
            return self._parse_config({})
        return self._load_and_parse(config_path)

    def _load_and_parse(self, config_path: Path) -> PlanVFSConfig:
        logger.debug("Loading configuration from {path}", path=config_path)
        if config_path.suffix in (".yaml", ".yml"):
            data = self._load_yaml_config(config_path)
        else:
            data = self._load_toml_config(config_path)
        return self._parse_config(self._substitute_env_vars(data))

    def _load_yaml_config(self, config_path: Path) -> dict[str, Any]:
        """Read the ``spec`` of a ``kind: Config`` manifest."""
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ConfigurationError(
                str(config_path), f"expected a mapping, got {type(data).__name__}"
            )
        kind = data.get("kind")
        if kind != "Config":
            raise ConfigurationError(
                str(config_path), f"YAML config must use 'kind: Config', got 'kind: {kind}'"
            )
        spec = data.get("spec", {})
        if not isinstance(spec, dict):
            raise ConfigurationError(str(config_path), "'spec' must be a mapping")
        return spec

    def _load_toml_config(self, config_path: Path) -> dict[str, Any]:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
        section = data.get("tool", {}).get("planvfs")
        if section is not None:
            return section
        if config_path.name == "pyproject.toml":
            logger.warning("No [tool.planvfs] section found in pyproject.toml, using defaults")
            return {}
        return data

    def _find_config_file(self, path: str | Path | None) -> Path | None:
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return config_path

        if env_path := os.getenv("PLANVFS_CONFIG_PATH"):
            config_path = Path(env_path)
            if config_path.exists():
                logger.debug("Using config from PLANVFS_CONFIG_PATH: {}", config_path)
                return config_path
            logger.warning("PLANVFS_CONFIG_PATH set but file not found: {}", config_path)

        if Path("planvfs.toml").exists():
            return Path("planvfs.toml")

        current = Path.cwd()
        while True:
            pyproject = current / "pyproject.toml"
            if pyproject.exists():
                with pyproject.open("rb") as f:
                    if "planvfs" in tomllib.load(f).get("tool", {}):
                        return pyproject
            if current == current.parent:
                return None
            current = current.parent

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively replace ``${VAR}`` with environment values.

        Unknown variables keep their placeholder.
        """
        if isinstance(data, str):

            def replacer(match: re.Match[str]) -> str:
                value = os.environ.get(match.group(1))
                if value is None:
                    logger.debug(
                        "Environment variable ${{{var_name}}} not found, keeping placeholder",
                        var_name=match.group(1),
                    )
                    return match.group(0)
                return value

            return self.ENV_VAR_PATTERN.sub(replacer, data)

        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}

        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]

        return data

    def _parse_config(self, data: dict[str, Any]) -> PlanVFSConfig:
        try:
            return PlanVFSConfig(
                logging=self._parse_logging_config(data.get("logging", {})),
                executor=self._parse_executor_config(data.get("executor", {})),
                vfs=self._parse_vfs_config(data.get("vfs", {})),
            )
        except (TypeError, ValueError, ValidationError) as e:
            raise ConfigurationError("config", str(e)) from e

    def _parse_logging_config(self, logging_data: dict[str, Any]) -> LoggingConfig:
        """Parse logging configuration with environment variable overrides.

        - PLANVFS_LOG_LEVEL: Log level
        - PLANVFS_LOG_FORMAT: Output format
        - PLANVFS_LOG_FILE: Optional file path for log output
        - PLANVFS_LOG_COLOR: Use color output (true/false)
        """
        values = dict(logging_data)
        if env_level := os.getenv("PLANVFS_LOG_LEVEL"):
            values["level"] = env_level.upper()
        if env_format := os.getenv("PLANVFS_LOG_FORMAT"):
            values["format"] = env_format.lower()
        if env_file := os.getenv("PLANVFS_LOG_FILE"):
            values["output_file"] = env_file
        if env_color := os.getenv("PLANVFS_LOG_COLOR"):
            try:
                values["use_color"] = _parse_bool_env(env_color)
            except ValueError as e:
                logger.warning("Invalid PLANVFS_LOG_COLOR value: {}", e)
        return LoggingConfig(**values)

    def _parse_executor_config(self, executor_data: dict[str, Any]) -> ExecutorConfig:
        """Parse executor settings.

        - PLANVFS_PARALLEL: Run ready sets concurrently (true/false)
        - PLANVFS_MAX_CONCURRENCY: Concurrent step limit
        """
        values = dict(executor_data)
        if env_parallel := os.getenv("PLANVFS_PARALLEL"):
            try:
                values["parallel"] = _parse_bool_env(env_parallel)
            except ValueError as e:
                logger.warning("Invalid PLANVFS_PARALLEL value: {}", e)
        if env_concurrency := os.getenv("PLANVFS_MAX_CONCURRENCY"):
            values["max_concurrency"] = int(env_concurrency)
        return ExecutorConfig(**values)

    def _parse_vfs_config(self, vfs_data: dict[str, Any]) -> VfsConfig:
        """Parse VFS settings.

        - PLANVFS_VFS_BACKEND: ``memory`` or ``sqlite``
        - PLANVFS_DB_PATH: SQLite database file
        - PLANVFS_PROJECT_ID: Default project id
        - PLANVFS_EXPORT_ROOT: Directory plans may export into
        """
        values = dict(vfs_data)
        if env_backend := os.getenv("PLANVFS_VFS_BACKEND"):
            values["backend"] = env_backend.lower()
        if env_db := os.getenv("PLANVFS_DB_PATH"):
            values["database_path"] = env_db
        if env_project := os.getenv("PLANVFS_PROJECT_ID"):
            values["default_project_id"] = env_project
        if env_export := os.getenv("PLANVFS_EXPORT_ROOT"):
            values["export_root"] = env_export
        return VfsConfig(**values)


def load_config(path: str | Path | None = None) -> PlanVFSConfig:
    """Load configuration from file, or return defaults if none is found."""
    return ConfigLoader().load(path)


def get_default_config() -> PlanVFSConfig:
    return PlanVFSConfig()


__all__ = ["ConfigLoader", "get_default_config", "load_config"]
