"""Tests for WorkflowExecutor."""

from __future__ import annotations

import asyncio

import pytest

from planvfs.drivers.observer_manager import LocalObserverManager
from planvfs.drivers.vfs import InMemoryVfsBackend
from planvfs.kernel.context.execution_context import (
    ExecutionContext,
    get_current_step_id,
    get_run_id,
)
from planvfs.kernel.domain.plan import Plan, PlanStep
from planvfs.kernel.exceptions import (
    CircularOrUnsatisfiedDependencyError,
    PlanValidationError,
    ToolExecutionError,
    ToolNotFoundError,
)
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
from planvfs.kernel.orchestration.workflow_executor import WorkflowExecutor, condition_holds
from planvfs.kernel.registry import ToolRegistry
from planvfs.kernel.vfs.store import VfsNodeStore
from planvfs.stdlib.tools import FunctionTool, register_builtin_tools


class Recorder:
    """Collects the order in which tools were called."""

    def __init__(self) -> None:
        self.calls: list[str] = []


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def registry(recorder: Recorder) -> ToolRegistry:
    def echo(context, **inputs):
        recorder.calls.append(get_current_step_id())
        return inputs

    async def aecho(context, **inputs):
        await asyncio.sleep(0)
        recorder.calls.append(get_current_step_id())
        return inputs

    def fail(context, message: str = "boom"):
        recorder.calls.append(get_current_step_id())
        raise RuntimeError(message)

    return ToolRegistry(
        [
            FunctionTool(echo, name="echo"),
            FunctionTool(aecho, name="aecho"),
            FunctionTool(fail, name="fail"),
        ]
    )


def step(step_id: str, tool: str = "echo", deps: list[str] | None = None, **kwargs) -> PlanStep:
    return PlanStep(id=step_id, tool=tool, dependencies=deps or [], **kwargs)


class TestConditionHolds:
    """Tests for ``when`` evaluation."""

    def test_true_reference(self) -> None:
        assert condition_holds("${steps.a.outputs.ok}", {"a": {"ok": True}})

    def test_missing_step_is_false(self) -> None:
        assert not condition_holds("${steps.a.outputs.ok}", {})

    def test_skipped_step_is_false(self) -> None:
        assert not condition_holds("${steps.a.outputs}", {"a": None})

    @pytest.mark.parametrize("text", ["", "false", "FALSE", "0", "no", "off", "none", "null"])
    def test_falsy_strings(self, text: str) -> None:
        assert not condition_holds(text, {})

    def test_other_strings_are_true(self) -> None:
        assert condition_holds("yes", {})
        assert condition_holds("x=${steps.a.outputs}", {"a": 0})

    def test_zero_and_empty_values(self) -> None:
        assert not condition_holds("${steps.a.outputs.n}", {"a": {"n": 0}})
        assert not condition_holds("${steps.a.outputs.items}", {"a": {"items": []}})


class TestWorkflowExecutor:
    """Execution order, data flow and failure handling."""

    @pytest.mark.asyncio
    async def test_diamond_runs_in_dependency_order(self, registry, recorder) -> None:
        plan = Plan(
            name="diamond",
            steps=[
                step("d", deps=["b", "c"]),
                step("b", deps=["a"]),
                step("c", "aecho", deps=["a"]),
                step("a"),
            ],
        )

        outputs = await WorkflowExecutor(registry).execute(plan)

        assert set(outputs) == {"a", "b", "c", "d"}
        assert recorder.calls[0] == "a"
        assert set(recorder.calls[1:3]) == {"b", "c"}
        assert recorder.calls[3] == "d"

    @pytest.mark.asyncio
    async def test_outputs_flow_into_later_inputs(self, registry) -> None:
        plan = Plan(
            name="flow",
            steps=[
                step("a", inputs={"value": 7, "name": "seven"}),
                step(
                    "b",
                    deps=["a"],
                    inputs={"n": "${steps.a.outputs.value}", "label": "n=${steps.a.outputs.name}"},
                ),
            ],
        )

        outputs = await WorkflowExecutor(registry).execute(plan)

        assert outputs["b"] == {"n": 7, "label": "n=seven"}

    @pytest.mark.asyncio
    async def test_empty_plan(self, registry) -> None:
        assert await WorkflowExecutor(registry).execute(Plan(name="empty", steps=[])) == {}

    @pytest.mark.asyncio
    async def test_cycle_fails_before_any_step_runs(self, registry, recorder) -> None:
        plan = Plan(name="cycle", steps=[step("a"), step("b", deps=["c"]), step("c", deps=["b"])])

        with pytest.raises(CircularOrUnsatisfiedDependencyError) as exc_info:
            await WorkflowExecutor(registry).execute(plan)

        assert exc_info.value.remaining == ["b", "c"]
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_unknown_dependency_is_named(self, registry, recorder) -> None:
        plan = Plan(name="ghost", steps=[step("a"), step("b", deps=["ghost"])])

        with pytest.raises(CircularOrUnsatisfiedDependencyError) as exc_info:
            await WorkflowExecutor(registry).execute(plan)

        assert exc_info.value.unknown == {"b": ["ghost"]}
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_unknown_tool_fails_before_any_step_runs(self, registry, recorder) -> None:
        plan = Plan(name="unknown", steps=[step("a"), step("b", "nope", deps=["a"])])

        with pytest.raises(ToolNotFoundError) as exc_info:
            await WorkflowExecutor(registry).execute(plan)

        assert exc_info.value.tool_name == "nope"
        assert exc_info.value.step_id == "b"
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_step_ids(self, registry) -> None:
        plan = Plan(name="dup", steps=[step("a"), step("a")])
        with pytest.raises(PlanValidationError):
            await WorkflowExecutor(registry).execute(plan)

    @pytest.mark.asyncio
    async def test_failure_aborts_and_keeps_completed_outputs(self, registry, recorder) -> None:
        plan = Plan(
            name="failing",
            steps=[
                step("a", inputs={"x": 1}),
                step("b", "fail", deps=["a"], inputs={"message": "disk full"}),
                step("c", deps=["b"]),
            ],
        )

        with pytest.raises(ToolExecutionError) as exc_info:
            await WorkflowExecutor(registry).execute(plan)

        error = exc_info.value
        assert error.step_id == "b"
        assert error.tool_name == "fail"
        assert isinstance(error.__cause__, RuntimeError)
        assert error.original_error is error.__cause__
        assert "disk full" in str(error)
        assert error.completed_outputs == {"a": {"x": 1}}
        assert "c" not in recorder.calls

    @pytest.mark.asyncio
    async def test_parallel_siblings_settle_before_abort(self, registry, recorder) -> None:
        plan = Plan(name="siblings", steps=[step("bad", "fail"), step("good", "aecho")])

        with pytest.raises(ToolExecutionError) as exc_info:
            await WorkflowExecutor(registry).execute(plan)

        assert exc_info.value.completed_outputs == {"good": {}}
        assert set(recorder.calls) == {"bad", "good"}

    @pytest.mark.asyncio
    async def test_sequential_mode_stops_at_first_failure(self, registry, recorder) -> None:
        plan = Plan(name="seq", steps=[step("a"), step("bad", "fail"), step("c")])

        with pytest.raises(ToolExecutionError):
            await WorkflowExecutor(registry, parallel=False).execute(plan)

        assert recorder.calls == ["a", "bad"]

    @pytest.mark.asyncio
    async def test_sequential_mode_keeps_plan_order(self, registry, recorder) -> None:
        plan = Plan(name="seq", steps=[step("z", "aecho"), step("y", "aecho"), step("x")])

        await WorkflowExecutor(registry, parallel=False).execute(plan)

        assert recorder.calls == ["z", "y", "x"]

    @pytest.mark.asyncio
    async def test_max_concurrency_is_respected(self) -> None:
        running = 0
        peak = 0

        async def slow(context):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return True

        registry = ToolRegistry([FunctionTool(slow, name="slow")])
        plan = Plan(name="wide", steps=[step(f"s{i}", "slow") for i in range(6)])

        outputs = await WorkflowExecutor(registry, max_concurrency=2).execute(plan)

        assert len(outputs) == 6
        assert peak == 2

    def test_invalid_max_concurrency(self, registry) -> None:
        with pytest.raises(ValueError, match="max_concurrency"):
            WorkflowExecutor(registry, max_concurrency=0)

    @pytest.mark.asyncio
    async def test_false_condition_skips_step(self, registry, recorder) -> None:
        plan = Plan(
            name="conditional",
            steps=[
                step("check", inputs={"ok": False}),
                step("guarded", deps=["check"], when="${steps.check.outputs.ok}"),
                step("after", deps=["guarded"], inputs={"prev": "${steps.guarded.outputs}"}),
            ],
        )

        outputs = await WorkflowExecutor(registry).execute(plan)

        assert outputs["guarded"] is None
        assert outputs["after"] == {"prev": None}
        assert "guarded" not in recorder.calls

    @pytest.mark.asyncio
    async def test_true_condition_runs_step(self, registry) -> None:
        plan = Plan(
            name="conditional",
            steps=[
                step("check", inputs={"ok": True}),
                step("guarded", deps=["check"], when="${steps.check.outputs.ok}", inputs={"v": 1}),
            ],
        )

        outputs = await WorkflowExecutor(registry).execute(plan)

        assert outputs["guarded"] == {"v": 1}

    @pytest.mark.asyncio
    async def test_skipped_step_with_unknown_tool_still_fails_validation(self, registry) -> None:
        plan = Plan(name="p", steps=[step("a", "missing", when="false")])
        with pytest.raises(ToolNotFoundError):
            await WorkflowExecutor(registry).execute(plan)

    @pytest.mark.asyncio
    async def test_run_id_is_published_during_the_run(self) -> None:
        seen: list[str | None] = []

        def capture(context):
            seen.append(get_run_id())
            return None

        registry = ToolRegistry([FunctionTool(capture, name="capture")])
        context = ExecutionContext(project_id="p")
        plan = Plan(name="p", steps=[step("a", "capture")])

        await WorkflowExecutor(registry).execute(plan, context)

        assert seen == [context.run_id]
        assert get_run_id() is None

    def test_validate_returns_graph(self, registry) -> None:
        plan = Plan(name="v", steps=[step("a"), step("b", deps=["a"])])
        assert WorkflowExecutor(registry).validate(plan).levels() == [["a"], ["b"]]


class TestExecutorEvents:
    """Observer notifications."""

    @pytest.mark.asyncio
    async def test_event_sequence(self, registry) -> None:
        events = []
        async with LocalObserverManager() as manager:
            manager.register(events.append)
            plan = Plan(
                name="events",
                steps=[step("a"), step("b", deps=["a"], when="false")],
            )

            await WorkflowExecutor(registry, observer_manager=manager).execute(plan)

        assert [type(event) for event in events] == [
            PlanStarted,
            LevelStarted,
            StepStarted,
            StepCompleted,
            LevelCompleted,
            LevelStarted,
            StepSkipped,
            LevelCompleted,
            PlanCompleted,
        ]
        assert events[0].total_steps == 2
        assert events[2].step_id == "a"
        assert events[6].reason == "condition 'false' is false"
        assert events[-1].outputs == {"a": {}, "b": None}

    @pytest.mark.asyncio
    async def test_failure_events(self, registry) -> None:
        events = []
        async with LocalObserverManager() as manager:
            manager.register(events.append, event_types=(StepFailed, PlanFailed))

            with pytest.raises(ToolExecutionError):
                await WorkflowExecutor(registry, observer_manager=manager).execute(
                    Plan(name="f", steps=[step("a", "fail")])
                )

        assert [type(event) for event in events] == [StepFailed, PlanFailed]
        assert isinstance(events[0].error, RuntimeError)
        assert isinstance(events[1].error, ToolExecutionError)

    @pytest.mark.asyncio
    async def test_observer_failure_does_not_affect_run(self, registry) -> None:
        def broken(event):
            raise RuntimeError("observer bug")

        async with LocalObserverManager() as manager:
            manager.register(broken)
            outputs = await WorkflowExecutor(registry, observer_manager=manager).execute(
                Plan(name="ok", steps=[step("a", inputs={"v": 1})])
            )

        assert outputs == {"a": {"v": 1}}

    @pytest.mark.asyncio
    async def test_failing_manager_does_not_affect_run(self, registry) -> None:
        class ExplodingManager:
            async def notify(self, event) -> None:
                raise RuntimeError("manager down")

        outputs = await WorkflowExecutor(registry, observer_manager=ExplodingManager()).execute(
            Plan(name="ok", steps=[step("a")])
        )

        assert outputs == {"a": {}}


class TestExecutorWithVfsTools:
    """End-to-end runs with the built-in VFS tools."""

    @pytest.mark.asyncio
    async def test_directory_then_file_by_reference(self) -> None:
        store = VfsNodeStore(InMemoryVfsBackend())
        registry = register_builtin_tools(ToolRegistry())
        plan = Plan(
            name="scaffold",
            steps=[
                step("mkdir", "create_vfs_directory", inputs={"path": "/src"}),
                step(
                    "write",
                    "create_vfs_file",
                    deps=["mkdir"],
                    inputs={
                        "path": "${steps.mkdir.outputs.path}/index.ts",
                        "content": "export const dir = '${steps.mkdir.outputs.nodeId}';",
                    },
                ),
                step(
                    "read",
                    "read_vfs_file",
                    deps=["write"],
                    inputs={"path": "${steps.write.outputs.path}"},
                ),
            ],
        )

        outputs = await WorkflowExecutor(registry).execute(
            plan, ExecutionContext(project_id="proj", store=store)
        )

        src = await store.arequire_path("proj", "/src")
        index = await store.arequire_path("proj", "/src/index.ts")
        assert outputs["mkdir"] == {"success": True, "path": "/src", "nodeId": src.id}
        assert outputs["write"]["nodeId"] == index.id
        assert index.parent_id == src.id
        assert outputs["read"]["content"] == f"export const dir = '{src.id}';"

    @pytest.mark.asyncio
    async def test_directory_then_file_by_path(self, project_context, builtin_registry) -> None:
        plan = Plan(
            name="index",
            steps=[
                step("a", "create_vfs_directory", inputs={"path": "/src/"}),
                step(
                    "b",
                    "create_vfs_file",
                    deps=["a"],
                    inputs={"path": "/src/index.ts", "content": "x"},
                ),
            ],
        )

        await WorkflowExecutor(builtin_registry).execute(plan, project_context)

        store = project_context.store
        src = await store.arequire_path("test-project", "/src")
        index = await store.arequire_path("test-project", "/src/index.ts")
        assert src.is_directory
        assert index.is_file
        assert index.parent_id == src.id
        assert index.content == "x"

    @pytest.mark.asyncio
    async def test_tool_without_project_fails_the_step(self) -> None:
        registry = register_builtin_tools(ToolRegistry())
        plan = Plan(name="p", steps=[step("a", "create_vfs_file", inputs={"path": "/a.txt"})])

        with pytest.raises(ToolExecutionError) as exc_info:
            await WorkflowExecutor(registry).execute(plan, ExecutionContext())

        assert "no VFS store" in str(exc_info.value.original_error)
