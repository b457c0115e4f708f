"""Local Observer Manager - in-process fan-out of execution events.

Provides event type filtering, concurrent dispatch with a global limit,
per-observer timeouts and fault isolation: observer failures are logged and
never reach the executor.
"""

from __future__ import annotations

import asyncio
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Protocol, cast

from planvfs.kernel.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from planvfs.kernel.orchestration.events import Event
    from planvfs.kernel.ports.observer_manager import (
        AsyncObserverFunc,
        Observer,
        ObserverFunc,
    )

logger = get_logger(__name__)


class ErrorHandler(Protocol):
    """Protocol for handling errors in event system."""

    def handle_error(self, error: Exception, context: dict[str, Any]) -> None:
        """Handle an error that occurred during event processing."""
        ...


class LoggingErrorHandler:
    """Default error handler that logs errors."""

    def handle_error(self, error: Exception, context: dict[str, Any]) -> None:
        logger.warning(
            "Observer {handler} failed for {event_type}: {error}",
            handler=context.get("handler_name", "unknown"),
            event_type=context.get("event_type", "unknown"),
            error=error,
        )


class FunctionObserver:
    """Wrapper to make functions implement the Observer protocol."""

    def __init__(self, func: ObserverFunc | AsyncObserverFunc, executor: ThreadPoolExecutor):
        self._func = func
        self._executor = executor
        self.__name__ = getattr(func, "__name__", "anonymous_observer")

    async def handle(self, event: Event) -> None:
        """Handle the event by calling the wrapped function."""
        if asyncio.iscoroutinefunction(self._func):
            await self._func(event)
        else:
            # Run sync function in thread pool to avoid blocking
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(self._executor, self._func, event)


# Default configuration constants
DEFAULT_MAX_CONCURRENT_OBSERVERS = 10
DEFAULT_OBSERVER_TIMEOUT = 5.0
DEFAULT_MAX_SYNC_WORKERS = 4


def _normalize_event_types(
    event_types: Iterable[type[Event]] | type[Event] | None,
) -> tuple[type[Event], ...] | None:
    if event_types is None:
        return None
    if isinstance(event_types, type):
        return (event_types,)
    normalized = tuple(event_types)
    return normalized or None


class LocalObserverManager:
    """Local implementation of the observer manager port.

    Examples
    --------
    Example usage::

        manager = LocalObserverManager()
        manager.register(lambda event: print(event.log_message()), event_types=StepCompleted)
        executor = WorkflowExecutor(registry, observer_manager=manager)
    """

    def __init__(
        self,
        max_concurrent_observers: int = DEFAULT_MAX_CONCURRENT_OBSERVERS,
        observer_timeout: float = DEFAULT_OBSERVER_TIMEOUT,
        max_sync_workers: int = DEFAULT_MAX_SYNC_WORKERS,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        """Initialize the local observer manager.

        Args
        ----
            max_concurrent_observers: Maximum number of observers to run concurrently
            observer_timeout: Timeout in seconds for each observer
            max_sync_workers: Maximum thread pool workers for sync observers
            error_handler: Optional error handler, defaults to LoggingErrorHandler
        """
        self._timeout = observer_timeout
        self._error_handler = error_handler or LoggingErrorHandler()
        self._semaphore = asyncio.Semaphore(max_concurrent_observers)
        self._executor = ThreadPoolExecutor(max_workers=max_sync_workers)
        self._executor_shutdown = False

        self._handlers: dict[str, Observer] = {}
        self._event_filters: dict[str, tuple[type[Event], ...] | None] = {}
        self._observer_timeouts: dict[str, float] = {}

    def register(
        self,
        handler: Observer | ObserverFunc | AsyncObserverFunc,
        *,
        observer_id: str | None = None,
        event_types: Iterable[type[Event]] | type[Event] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Register an observer with optional event type filtering.

        Raises
        ------
        ValueError
            If ``observer_id`` is already registered or ``timeout`` is not positive.
        TypeError
            If ``handler`` is neither callable nor an Observer.
        """
        resolved_id = observer_id or str(uuid.uuid4())
        if resolved_id in self._handlers:
            raise ValueError(f"Observer '{resolved_id}' already registered")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Observer timeout must be positive, got {timeout}")

        if hasattr(handler, "handle"):
            observer = cast("Observer", handler)
        elif callable(handler):
            observer = FunctionObserver(handler, self._executor)
        else:
            raise TypeError(
                f"Observer must be callable or implement Observer protocol, got {type(handler)}"
            )

        self._handlers[resolved_id] = observer
        self._event_filters[resolved_id] = _normalize_event_types(event_types)
        if timeout is not None:
            self._observer_timeouts[resolved_id] = timeout
        return resolved_id

    def unregister(self, handler_id: str) -> bool:
        found = self._handlers.pop(handler_id, None) is not None
        self._event_filters.pop(handler_id, None)
        self._observer_timeouts.pop(handler_id, None)
        return found

    async def notify(self, event: Event) -> None:
        """Notify all interested observers of an event.

        Observers run concurrently; the call returns once all of them have
        finished, failed or timed out.
        """
        observers = [
            (observer_id, observer)
            for observer_id, observer in self._handlers.items()
            if self._should_notify(observer_id, event)
        ]
        if not observers:
            return
        await asyncio.gather(
            *(self._safe_invoke(handler_id, observer, event) for handler_id, observer in observers)
        )

    def clear(self) -> None:
        """Remove all registered observers."""
        self._handlers.clear()
        self._event_filters.clear()
        self._observer_timeouts.clear()

    async def close(self) -> None:
        """Close the manager and cleanup resources."""
        self.clear()
        if not self._executor_shutdown:
            self._executor.shutdown(wait=True)
            self._executor_shutdown = True

    def __len__(self) -> int:
        return len(self._handlers)

    async def __aenter__(self) -> LocalObserverManager:
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()

    # Private helper methods

    def _should_notify(self, observer_id: str, event: Event) -> bool:
        """Check if observer should be notified of this event type."""
        event_filter = self._event_filters.get(observer_id)
        if event_filter is None:
            return True
        # Subclasses of a filtered type match too
        return isinstance(event, event_filter)

    async def _safe_invoke(self, observer_id: str, observer: Observer, event: Event) -> None:
        """Invoke an observer under the concurrency limit and its timeout."""
        timeout_value = self._observer_timeouts.get(observer_id, self._timeout)
        try:
            async with self._semaphore:
                await asyncio.wait_for(observer.handle(event), timeout=timeout_value)
        except Exception as exc:
            self._error_handler.handle_error(
                exc,
                {
                    "handler_name": getattr(observer, "__name__", observer.__class__.__name__),
                    "event_type": type(event).__name__,
                },
            )


__all__ = ["FunctionObserver", "LocalObserverManager", "LoggingErrorHandler"]
