"""Observer manager implementations."""

from planvfs.drivers.observer_manager.local import LocalObserverManager

__all__ = ["LocalObserverManager"]
