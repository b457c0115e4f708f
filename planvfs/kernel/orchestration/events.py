"""Event data classes emitted while a plan executes.

Observers receive these read-only; they exist for progress reporting and never
influence the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True)
class Event:
    """Base class for all events - provides timestamp."""

    timestamp: datetime = field(default_factory=datetime.now, init=False)

    def log_message(self) -> str:
        """Get a formatted log message for this event.

        Override in subclasses to provide custom formatting.

        Returns
        -------
        str
            A formatted string suitable for logging
        """
        return f"{self.__class__.__name__} at {self.timestamp.isoformat()}"


# Plan events
@dataclass(slots=True)
class PlanStarted(Event):
    """A plan run has started."""

    name: str
    run_id: str
    total_steps: int

    def log_message(self) -> str:
        return f"🎬 Plan '{self.name}' started with {self.total_steps} step(s)"


@dataclass(slots=True)
class PlanCompleted(Event):
    """A plan run finished with every step completed or skipped."""

    name: str
    run_id: str
    duration_ms: float
    outputs: dict[str, Any] = field(default_factory=dict)

    def log_message(self) -> str:
        return f"🏁 Plan '{self.name}' completed in {self.duration_ms / 1000:.2f}s"


@dataclass(slots=True)
class PlanFailed(Event):
    """A plan run was aborted."""

    name: str
    run_id: str
    error: Exception

    def log_message(self) -> str:
        return f"💥 Plan '{self.name}' failed: {self.error}"


# Level events
@dataclass(slots=True)
class LevelStarted(Event):
    """A ready set of steps is about to be dispatched.

    Attributes
    ----------
    level_index : int
        Zero-based position of the ready set within the run
    step_ids : list[str]
        Steps dispatched together
    """

    level_index: int
    step_ids: list[str]

    def log_message(self) -> str:
        return f"🌊 Level {self.level_index} started: {', '.join(self.step_ids)}"


@dataclass(slots=True)
class LevelCompleted(Event):
    """Every step of a ready set has settled successfully."""

    level_index: int
    step_ids: list[str]
    duration_ms: float

    def log_message(self) -> str:
        return f"🌊 Level {self.level_index} completed in {self.duration_ms / 1000:.2f}s"


# Step events
@dataclass(slots=True)
class StepStarted(Event):
    """A step has started executing."""

    step_id: str
    tool: str
    level_index: int
    title: str | None = None
    dependencies: list[str] = field(default_factory=list)

    def log_message(self) -> str:
        deps = f" (deps: {', '.join(self.dependencies)})" if self.dependencies else ""
        return f"🚀 Step '{self.title or self.step_id}' started with tool '{self.tool}'{deps}"


@dataclass(slots=True)
class StepCompleted(Event):
    """A step has completed successfully."""

    step_id: str
    tool: str
    level_index: int
    output: Any
    duration_ms: float

    def log_message(self) -> str:
        return f"✅ Step '{self.step_id}' completed in {self.duration_ms / 1000:.2f}s"


@dataclass(slots=True)
class StepSkipped(Event):
    """A step was skipped because its ``when`` condition was falsy."""

    step_id: str
    tool: str
    level_index: int
    reason: str | None = None

    def log_message(self) -> str:
        return f"⏭️ Step '{self.step_id}' skipped: {self.reason or 'unknown'}"


@dataclass(slots=True)
class StepFailed(Event):
    """A step's tool raised."""

    step_id: str
    tool: str
    level_index: int
    error: Exception

    def log_message(self) -> str:
        return f"❌ Step '{self.step_id}' failed: {self.error}"


__all__ = [
    "Event",
    "LevelCompleted",
    "LevelStarted",
    "PlanCompleted",
    "PlanFailed",
    "PlanStarted",
    "StepCompleted",
    "StepFailed",
    "StepSkipped",
    "StepStarted",
]
