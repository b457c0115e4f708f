"""Configuration loading and management for planvfs."""

from planvfs.kernel.config.models import ExecutorConfig, LoggingConfig, PlanVFSConfig, VfsConfig


def __getattr__(name: str) -> object:
    """Lazy imports for config loader symbols (defined in planvfs.compiler.config_loader)."""
    if name in {"ConfigLoader", "get_default_config", "load_config"}:
        from planvfs.compiler import config_loader

        return getattr(config_loader, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["ExecutorConfig", "LoggingConfig", "PlanVFSConfig", "VfsConfig"]
