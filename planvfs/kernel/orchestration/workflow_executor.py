"""Workflow executor: runs a :class:`Plan` against a tool registry.

Execution is ready-set driven. Each iteration dispatches every uncompleted
step whose dependencies have all completed, resolving its input references
against the outputs produced so far immediately before dispatch. Steps of one
ready set run concurrently (bounded by a semaphore) or one after another.

A failing step aborts the run once the current ready set has settled: nothing
further is scheduled and nothing already done is rolled back.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any

from planvfs.kernel.context.execution_context import (
    ExecutionContext,
    RunScope,
    set_current_step_id,
)
from planvfs.kernel.exceptions import (
    CircularOrUnsatisfiedDependencyError,
    PlanVFSError,
    ToolExecutionError,
)
from planvfs.kernel.logging import get_logger
from planvfs.kernel.orchestration.events import (
    LevelCompleted,
    LevelStarted,
    PlanCompleted,
    PlanFailed,
    PlanStarted,
    StepCompleted,
    StepFailed,
    StepSkipped,
    StepStarted,
)
from planvfs.kernel.orchestration.input_resolver import (
    parse_whole_reference,
    resolve_inputs,
    resolve_value,
)
from planvfs.kernel.orchestration.plan_graph import PlanGraph
from planvfs.kernel.utils.timer import Timer, step_timer

if TYPE_CHECKING:
    from planvfs.kernel.domain.plan import Plan, PlanStep
    from planvfs.kernel.orchestration.events import Event
    from planvfs.kernel.ports.observer_manager import ObserverManager
    from planvfs.kernel.registry import ToolRegistry

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 10

_FALSY_STRINGS = frozenset({"", "false", "0", "no", "off", "none", "null"})

_SKIPPED = object()


def condition_holds(expression: str, outputs: dict[str, Any]) -> bool:
    """Evaluate a step's ``when`` expression against completed outputs.

    The expression is resolved like any input. A reference that cannot be
    resolved counts as false, as do the strings ``""``, ``"false"``, ``"0"``,
    ``"no"``, ``"off"``, ``"none"`` and ``"null"`` (case-insensitive). Other
    values use Python truthiness.

    Examples
    --------
    >>> condition_holds("${steps.a.outputs.success}", {"a": {"success": True}})
    True
    >>> condition_holds("${steps.a.outputs.success}", {})
    False
    >>> condition_holds("false", {})
    False
    """
    value = resolve_value(expression, outputs)
    reference = parse_whole_reference(expression)
    if reference is not None and reference.step_id not in outputs:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    return bool(value)


class WorkflowExecutor:
    """Execute plans step by step in dependency order.

    Parameters
    ----------
    registry : ToolRegistry
        Tools the plan's steps may call.
    observer_manager : ObserverManager | None
        Receives execution events; its failures never affect the run.
    parallel : bool
        Run the steps of a ready set concurrently (default) or sequentially.
    max_concurrency : int
        Upper bound on concurrently running steps.

    Examples
    --------
    Example usage::

        registry = ToolRegistry()
        register_builtin_tools(registry)
        executor = WorkflowExecutor(registry)
        outputs = await executor.execute(plan, ExecutionContext(project_id="p1", store=store))
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        observer_manager: ObserverManager | None = None,
        parallel: bool = True,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.registry = registry
        self.observer_manager = observer_manager
        self.parallel = parallel
        self.max_concurrency = max_concurrency

    def validate(self, plan: Plan) -> PlanGraph:
        """Check a plan without running it.

        Returns
        -------
        PlanGraph
            The analysed plan.

        Raises
        ------
        PlanValidationError
            If step ids are not unique.
        ToolNotFoundError
            If a step names an unregistered tool.
        CircularOrUnsatisfiedDependencyError
            If some steps could never run.
        """
        graph = PlanGraph(plan)
        for step in plan.steps:
            self.registry.require(step.tool, step_id=step.id)
        graph.levels()
        for step_id, referenced in graph.undeclared_references().items():
            logger.warning(
                "Step '{step}' references {refs} without depending on them",
                step=step_id,
                refs=", ".join(referenced),
            )
        return graph

    async def execute(
        self, plan: Plan, context: ExecutionContext | None = None
    ) -> dict[str, Any]:
        """Run ``plan`` to completion and return every step's output by step id.

        Skipped steps map to None.

        Raises
        ------
        PlanValidationError, ToolNotFoundError, CircularOrUnsatisfiedDependencyError
            Before any step runs, see :meth:`validate`.
        ToolExecutionError
            When a step fails; ``completed_outputs`` holds what finished.
        """
        context = context or ExecutionContext()
        graph = self.validate(plan)

        async with RunScope(context, observer_manager=self.observer_manager):
            run_timer = Timer()
            logger.info(
                "Starting plan '{name}' with {count} step(s) (run {run_id})",
                name=plan.name,
                count=len(graph),
                run_id=context.run_id,
            )
            await self._notify(
                PlanStarted(name=plan.name, run_id=context.run_id, total_steps=len(graph))
            )
            try:
                outputs = await self._run_levels(graph, context)
            except PlanVFSError as e:
                logger.error("Plan '{name}' failed: {error}", name=plan.name, error=e)
                await self._notify(PlanFailed(name=plan.name, run_id=context.run_id, error=e))
                raise

            logger.info(
                "Plan '{name}' completed in {duration}ms",
                name=plan.name,
                duration=run_timer.duration_str,
            )
            await self._notify(
                PlanCompleted(
                    name=plan.name,
                    run_id=context.run_id,
                    duration_ms=run_timer.duration_ms,
                    outputs=dict(outputs),
                )
            )
            return outputs

    async def _run_levels(self, graph: PlanGraph, context: ExecutionContext) -> dict[str, Any]:
        outputs: dict[str, Any] = {}
        completed: set[str] = set()
        level_index = 0

        while len(completed) < len(graph):
            ready = graph.ready(completed)
            if not ready:
                remaining = [step.id for step in graph.plan.steps if step.id not in completed]
                raise CircularOrUnsatisfiedDependencyError(
                    remaining, unknown=graph.unknown_dependencies()
                )

            step_ids = [step.id for step in ready]
            logger.debug("Level {}: dispatching {}", level_index, step_ids)
            await self._notify(LevelStarted(level_index=level_index, step_ids=step_ids))

            with step_timer() as level_timer:
                results = await self._run_ready_set(ready, level_index, context, outputs)

            failures: list[ToolExecutionError] = []
            for step, result in zip(ready, results, strict=False):
                if isinstance(result, ToolExecutionError):
                    failures.append(result)
                    continue
                outputs[step.id] = None if result is _SKIPPED else result
                completed.add(step.id)

            if failures:
                error = failures[0]
                error.completed_outputs = dict(outputs)
                if len(failures) > 1:
                    logger.error(
                        "{count} steps failed in level {level}: {steps}",
                        count=len(failures),
                        level=level_index,
                        steps=", ".join(failure.step_id for failure in failures),
                    )
                raise error

            await self._notify(
                LevelCompleted(
                    level_index=level_index,
                    step_ids=step_ids,
                    duration_ms=level_timer.duration_ms,
                )
            )
            level_index += 1

        return outputs

    async def _run_ready_set(
        self,
        ready: list[PlanStep],
        level_index: int,
        context: ExecutionContext,
        outputs: dict[str, Any],
    ) -> list[Any]:
        """Run one ready set; failures are returned in place of outputs.

        In sequential mode the first failure stops the set, so the result list
        can be shorter than ``ready``.
        """
        if not self.parallel or len(ready) == 1:
            results: list[Any] = []
            for step in ready:
                try:
                    results.append(await self._run_step(step, level_index, context, outputs))
                except ToolExecutionError as e:
                    results.append(e)
                    break
            return results

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(step: PlanStep) -> Any:
            async with semaphore:
                return await self._run_step(step, level_index, context, outputs)

        gathered = await asyncio.gather(*(bounded(step) for step in ready), return_exceptions=True)
        for result in gathered:
            if isinstance(result, BaseException) and not isinstance(result, ToolExecutionError):
                raise result
        return list(gathered)

    async def _run_step(
        self,
        step: PlanStep,
        level_index: int,
        context: ExecutionContext,
        outputs: dict[str, Any],
    ) -> Any:
        set_current_step_id(step.id)

        if step.when is not None and not condition_holds(step.when, outputs):
            reason = f"condition '{step.when}' is false"
            logger.info("Step '{step}' skipped: {reason}", step=step.id, reason=reason)
            await self._notify(
                StepSkipped(step_id=step.id, tool=step.tool, level_index=level_index, reason=reason)
            )
            return _SKIPPED

        tool = self.registry.require(step.tool, step_id=step.id)
        await self._notify(
            StepStarted(
                step_id=step.id,
                tool=step.tool,
                level_index=level_index,
                title=step.title,
                dependencies=list(step.dependencies),
            )
        )
        logger.info("Executing step '{step}' with tool '{tool}'", step=step.label, tool=step.tool)

        with step_timer() as timer:
            try:
                inputs = resolve_inputs(step.inputs, outputs)
                output = tool.execute(context, inputs)
                if inspect.isawaitable(output):
                    output = await output
            except Exception as e:
                logger.error(
                    "Step '{step}' failed after {duration}ms: {error}",
                    step=step.id,
                    duration=timer.duration_str,
                    error=e,
                )
                await self._notify(
                    StepFailed(step_id=step.id, tool=step.tool, level_index=level_index, error=e)
                )
                raise ToolExecutionError(step.id, step.tool, e) from e

        logger.debug(
            "Step '{step}' completed in {duration}ms", step=step.id, duration=timer.duration_str
        )
        await self._notify(
            StepCompleted(
                step_id=step.id,
                tool=step.tool,
                level_index=level_index,
                output=output,
                duration_ms=timer.duration_ms,
            )
        )
        return output

    async def _notify(self, event: Event) -> None:
        """Forward an event to the observer manager, if one is configured."""
        if self.observer_manager is None:
            return
        try:
            await self.observer_manager.notify(event)
        except Exception as e:
            logger.warning(
                "Observer manager failed on {event}: {error}", event=type(event).__name__, error=e
            )


__all__ = ["DEFAULT_MAX_CONCURRENCY", "WorkflowExecutor", "condition_holds"]
