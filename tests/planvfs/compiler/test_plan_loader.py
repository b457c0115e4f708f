"""Tests for plan and blueprint loading."""

from __future__ import annotations

import json

import pytest

from planvfs.compiler import load_blueprint, load_plan, parse_plan
from planvfs.kernel.exceptions import PlanValidationError, ValidationError

PLAN_YAML = """\
name: scaffold
description: Create the source tree
steps:
  - id: mkdir
    tool: create_vfs_directory
    title: Create src
    inputs:
      path: /src
  - id: write
    tool: create_vfs_file
    dependencies: [mkdir]
    inputs:
      path: "${steps.mkdir.outputs.path}/index.ts"
      content: ""
"""


class TestParsePlan:
    """Tests for parse_plan."""

    def test_plain_mapping(self) -> None:
        plan = parse_plan({"name": "p", "steps": [{"id": "a", "tool": "t"}]})
        assert plan.name == "p"
        assert plan.steps[0].dependencies == []

    def test_wrapped_plan(self) -> None:
        plan = parse_plan({"plan": {"name": "p", "steps": []}})
        assert plan.name == "p"

    def test_not_a_mapping(self) -> None:
        with pytest.raises(PlanValidationError, match="must be a mapping"):
            parse_plan(["a", "b"])

    def test_invalid_step(self) -> None:
        with pytest.raises(PlanValidationError):
            parse_plan({"name": "p", "steps": [{"id": "a"}]})


class TestLoadPlan:
    """Tests for load_plan."""

    def test_yaml(self, tmp_path) -> None:
        path = tmp_path / "plan.yaml"
        path.write_text(PLAN_YAML, encoding="utf-8")

        plan = load_plan(path)

        assert [step.id for step in plan.steps] == ["mkdir", "write"]
        assert plan.steps[0].title == "Create src"
        assert plan.steps[1].inputs["path"] == "${steps.mkdir.outputs.path}/index.ts"

    def test_json(self, tmp_path) -> None:
        path = tmp_path / "plan.json"
        path.write_text(
            json.dumps({"plan": {"name": "j", "steps": [{"id": "a", "tool": "t"}]}}),
            encoding="utf-8",
        )

        assert load_plan(str(path)).name == "j"

    def test_malformed_json(self, tmp_path) -> None:
        path = tmp_path / "plan.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValidationError, match="cannot parse document"):
            load_plan(path)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_plan(tmp_path / "nope.yaml")


class TestLoadBlueprint:
    """Tests for load_blueprint."""

    def test_folder_document(self, tmp_path) -> None:
        path = tmp_path / "blueprint.yaml"
        path.write_text(
            "type: folder\nname: app\nchildren:\n"
            "  - {type: file, name: main.py, content: 'print(1)'}\n"
            "  - {type: folder, name: tests}\n",
            encoding="utf-8",
        )

        blueprint = load_blueprint(path)

        assert [node.name for node in blueprint.nodes] == ["app"]
        assert [child.name for child in blueprint.nodes[0].children] == ["main.py", "tests"]
        assert blueprint.count() == (1, 2)

    def test_invalid_blueprint(self, tmp_path) -> None:
        path = tmp_path / "blueprint.json"
        path.write_text(json.dumps({"type": "file", "name": "x", "children": [{}]}), "utf-8")

        with pytest.raises(ValidationError, match="blueprint"):
            load_blueprint(path)

    def test_empty_document(self, tmp_path) -> None:
        path = tmp_path / "blueprint.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ValidationError, match="blueprint"):
            load_blueprint(path)
