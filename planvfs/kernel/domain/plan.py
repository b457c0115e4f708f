"""Plan and step models: the contract an external planner must emit.

Wire format::

    {
      "name": "scaffold",
      "description": "Create the source tree",
      "steps": [
        {"id": "a", "tool": "create_vfs_directory", "inputs": {"path": "/src/"}},
        {"id": "b", "tool": "create_vfs_file",
         "inputs": {"path": "/src/index.ts", "content": "x"},
         "dependencies": ["a"]}
      ]
    }

Plans come from an untrusted generative service, so they are validated like
any other external input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlanStep(BaseModel):
    """One tool invocation in a plan.

    Attributes
    ----------
    id : str
        Step id, unique within the plan.
    tool : str
        Registry key of the tool to run.
    inputs : dict[str, Any]
        Literal values or ``${steps.<id>.outputs.<path>}`` reference expressions.
    dependencies : list[str]
        Ids of steps that must complete first.
    title, description : str | None
        Human-readable labels used in progress events.
    when : str | None
        Optional reference expression; the step is skipped when it resolves
        to a falsy value.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(min_length=1)
    tool: str = Field(min_length=1)
    inputs: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    title: str | None = None
    description: str | None = None
    when: str | None = None

    @field_validator("inputs", mode="before")
    @classmethod
    def _none_inputs_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("dependencies", mode="before")
    @classmethod
    def _none_dependencies_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def label(self) -> str:
        return self.title or self.id


class Plan(BaseModel):
    """A named, ordered list of steps. Steps need not be pre-sorted."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    description: str = ""
    steps: list[PlanStep] = Field(default_factory=list)

    @property
    def step_ids(self) -> list[str]:
        return [step.id for step in self.steps]

    def get_step(self, step_id: str) -> PlanStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


__all__ = ["Plan", "PlanStep"]
