"""Whole-run retry with exponential backoff.

The executor never retries a step by itself. Callers that want retries wrap
an entire ``execute`` call; the CLI does this for ``planvfs run --retries``.

Examples
--------
Example usage::

    config = RetryConfig(max_retries=3, delay=0.5)
    outputs = await execute_with_retry(lambda: executor.execute(plan, context), config)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from planvfs.kernel.exceptions import ToolExecutionError
from planvfs.kernel.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry behavior with exponential backoff.

    Parameters
    ----------
    max_retries : int
        Total number of attempts. 1 means no retries (single attempt).
    delay : float
        Initial delay in seconds before the first retry.
    backoff : float
        Multiplier applied to the delay after each retry.
    max_delay : float
        Maximum delay cap in seconds.
    retry_on : tuple[type[Exception], ...]
        Exception types that trigger another attempt; anything else propagates
        immediately.
    """

    max_retries: int = 1
    delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 60.0
    retry_on: tuple[type[Exception], ...] = (ToolExecutionError,)

    @property
    def has_retries(self) -> bool:
        return self.max_retries > 1

    def compute_delay(self, attempt: int) -> float:
        """Compute the delay after the given failed attempt (1-indexed).

        Examples
        --------
        >>> cfg = RetryConfig(delay=1.0, backoff=2.0, max_delay=10.0)
        >>> cfg.compute_delay(1)
        1.0
        >>> cfg.compute_delay(3)
        4.0
        >>> cfg.compute_delay(10)
        10.0
        """
        return min(self.delay * (self.backoff ** (attempt - 1)), self.max_delay)


def _log_retry(attempt: int, max_retries: int, error: Exception, delay: float) -> None:
    logger.warning(
        "Attempt {attempt}/{max_retries} failed: {error}; retrying in {delay:.2f}s",
        attempt=attempt,
        max_retries=max_retries,
        error=error,
        delay=delay,
    )


async def execute_with_retry(
    fn: Callable[[], Awaitable[Any]],
    config: RetryConfig,
    *,
    on_retry: Callable[[int, int, Exception, float], Any] | None = _log_retry,
) -> Any:
    """Execute an async callable with retry and exponential backoff.

    Parameters
    ----------
    fn : Callable[[], Awaitable[Any]]
        Zero-argument async callable; bind arguments with a lambda or
        ``functools.partial``.
    config : RetryConfig
        Retry configuration.
    on_retry : callable, optional
        Invoked before each retry sleep with
        ``(attempt, max_retries, error, delay)``.

    Returns
    -------
    Any
        The return value of *fn*.
    """
    for attempt in range(1, config.max_retries + 1):
        try:
            return await fn()
        except config.retry_on as exc:
            if attempt >= config.max_retries:
                raise
            delay = config.compute_delay(attempt)
            if on_retry is not None:
                on_retry(attempt, config.max_retries, exc, delay)
            await asyncio.sleep(delay)
    raise ValueError(f"max_retries must be at least 1, got {config.max_retries}")


__all__ = ["RetryConfig", "execute_with_retry"]
