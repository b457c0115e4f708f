"""Configuration data models for planvfs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from planvfs.kernel.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration.

    Attributes
    ----------
    level : str, default="INFO"
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : str, default="structured"
        Output format (console, json, structured, dual, rich)
    output_file : str | None, default=None
        Optional file path to write logs to
    use_color : bool, default=True
        Use ANSI color codes (auto-disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output
    enable_stdlib_bridge : bool, default=False
        Route stdlib logging of third-party libraries through loguru

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.planvfs.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides:

    ```bash
    export PLANVFS_LOG_LEVEL=DEBUG
    export PLANVFS_LOG_FORMAT=json
    export PLANVFS_LOG_FILE=/var/log/planvfs/app.log
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "dual", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True
    enable_stdlib_bridge: bool = False


@dataclass(frozen=True, slots=True)
class ExecutorConfig:
    """Workflow executor defaults.

    Attributes
    ----------
    parallel : bool
        Run independent steps of a ready set concurrently
    max_concurrency : int
        Upper bound on concurrently running steps
    retries : int
        Total attempts for a whole run (1 = no retry)
    retry_delay : float
        Initial delay between attempts in seconds
    """

    parallel: bool = True
    max_concurrency: int = 10
    retries: int = 1
    retry_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValidationError("max_concurrency", "must be at least 1", self.max_concurrency)
        if self.retries < 1:
            raise ValidationError("retries", "must be at least 1", self.retries)
        if self.retry_delay < 0:
            raise ValidationError("retry_delay", "must not be negative", self.retry_delay)


@dataclass(frozen=True, slots=True)
class VfsConfig:
    """VFS storage configuration.

    Attributes
    ----------
    backend : str
        ``"memory"`` (process-local) or ``"sqlite"``
    database_path : str
        SQLite database file when ``backend`` is ``"sqlite"``
    max_file_size : int
        Largest accepted file content in UTF-8 bytes
    default_project_id : str
        Project used by the CLI when none is given
    export_root : str | None
        Directory plans may export into; the export tool is disabled when unset
    """

    backend: Literal["memory", "sqlite"] = "memory"
    database_path: str = "planvfs.db"
    max_file_size: int = 1_048_576
    default_project_id: str = "default"
    export_root: str | None = None

    def __post_init__(self) -> None:
        if self.backend not in ("memory", "sqlite"):
            raise ValidationError("backend", "must be 'memory' or 'sqlite'", self.backend)
        if self.max_file_size < 1:
            raise ValidationError("max_file_size", "must be positive", self.max_file_size)


@dataclass(frozen=True, slots=True)
class PlanVFSConfig:
    """Complete planvfs configuration.

    Examples
    --------
    TOML configuration in pyproject.toml:

    ```toml
    [tool.planvfs.logging]
    level = "DEBUG"

    [tool.planvfs.executor]
    parallel = true
    max_concurrency = 5

    [tool.planvfs.vfs]
    backend = "sqlite"
    database_path = "${PLANVFS_DATA_DIR}/vfs.db"
    ```
    """

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    vfs: VfsConfig = field(default_factory=VfsConfig)


__all__ = ["ExecutorConfig", "LoggingConfig", "PlanVFSConfig", "VfsConfig"]
