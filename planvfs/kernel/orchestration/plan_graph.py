"""Dependency analysis for plans.

Scheduling is ready-set based: a step is ready once every one of its
dependencies has completed. :meth:`PlanGraph.levels` dry-runs that loop so a
cycle or a dependency on an unknown step is found before anything executes.
"""

from __future__ import annotations

from collections.abc import Collection

from planvfs.kernel.domain.plan import Plan, PlanStep
from planvfs.kernel.exceptions import CircularOrUnsatisfiedDependencyError, PlanValidationError
from planvfs.kernel.orchestration.input_resolver import extract_step_references


class PlanGraph:
    """Read-only dependency view over a :class:`Plan`.

    Raises
    ------
    PlanValidationError
        If two steps share an id.

    Examples
    --------
    >>> plan = Plan(name="p", steps=[
    ...     PlanStep(id="a", tool="t"),
    ...     PlanStep(id="b", tool="t", dependencies=["a"]),
    ...     PlanStep(id="c", tool="t", dependencies=["a"]),
    ...     PlanStep(id="d", tool="t", dependencies=["b", "c"]),
    ... ])
    >>> PlanGraph(plan).levels()
    [['a'], ['b', 'c'], ['d']]
    """

    def __init__(self, plan: Plan) -> None:
        self.plan = plan
        self._steps: dict[str, PlanStep] = {}
        duplicates: list[str] = []
        for step in plan.steps:
            if step.id in self._steps:
                duplicates.append(step.id)
            self._steps[step.id] = step
        if duplicates:
            raise PlanValidationError(
                "steps", "step ids must be unique", value=sorted(set(duplicates))
            )

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def step(self, step_id: str) -> PlanStep:
        return self._steps[step_id]

    def ready(self, completed: Collection[str]) -> list[PlanStep]:
        """Uncompleted steps whose dependencies have all completed, in plan order."""
        return [
            step
            for step in self._steps.values()
            if step.id not in completed and all(dep in completed for dep in step.dependencies)
        ]

    def levels(self) -> list[list[str]]:
        """Dry-run the ready-set loop and return the step ids of each iteration.

        Raises
        ------
        CircularOrUnsatisfiedDependencyError
            If some steps can never become ready.
        """
        completed: set[str] = set()
        levels: list[list[str]] = []
        while len(completed) < len(self._steps):
            ready = [step.id for step in self.ready(completed)]
            if not ready:
                remaining = [step_id for step_id in self._steps if step_id not in completed]
                raise CircularOrUnsatisfiedDependencyError(
                    remaining, unknown=self.unknown_dependencies()
                )
            levels.append(ready)
            completed.update(ready)
        return levels

    def unknown_dependencies(self) -> dict[str, list[str]]:
        """Map step id to the dependencies that name no step of the plan."""
        return {
            step.id: missing
            for step in self._steps.values()
            if (missing := [dep for dep in step.dependencies if dep not in self._steps])
        }

    def ancestors(self, step_id: str) -> set[str]:
        """Transitive dependencies of ``step_id`` that exist in the plan."""
        seen: set[str] = set()
        stack = list(self._steps[step_id].dependencies)
        while stack:
            dep = stack.pop()
            if dep in seen or dep not in self._steps:
                continue
            seen.add(dep)
            stack.extend(self._steps[dep].dependencies)
        return seen

    def undeclared_references(self) -> dict[str, list[str]]:
        """Map step id to referenced steps that are not among its ancestors.

        Such references may be read before the referenced step has run, in
        which case they stay unresolved.
        """
        result: dict[str, list[str]] = {}
        for step in self._steps.values():
            referenced = extract_step_references(step.inputs)
            if step.when:
                referenced |= extract_step_references(step.when)
            undeclared = sorted(referenced - self.ancestors(step.id))
            if undeclared:
                result[step.id] = undeclared
        return result


__all__ = ["PlanGraph"]
