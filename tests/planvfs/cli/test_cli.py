"""Tests for the planvfs command line interface."""

from __future__ import annotations

import json

import pytest
import yaml
from typer.testing import CliRunner

from planvfs import __version__
from planvfs.cli.main import app

PLAN = {
    "name": "scaffold",
    "steps": [
        {"id": "mkdir", "tool": "create_vfs_directory", "inputs": {"path": "/src"}},
        {
            "id": "write",
            "tool": "create_vfs_file",
            "dependencies": ["mkdir"],
            "inputs": {"path": "${steps.mkdir.outputs.path}/index.ts", "content": "export {};"},
        },
    ],
}

BLUEPRINT = {
    "type": "folder",
    "name": "app",
    "children": [
        {"type": "file", "name": "main.py", "content": "print('hi')"},
        {"type": "folder", "name": "pkg", "children": [{"type": "file", "name": "__init__.py"}]},
    ],
}


@pytest.fixture
def runner():
    """Fixture providing a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Empty working directory without planvfs environment overrides."""
    for name in (
        "PLANVFS_CONFIG_PATH",
        "PLANVFS_VFS_BACKEND",
        "PLANVFS_DB_PATH",
        "PLANVFS_EXPORT_ROOT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def invoke_json(runner, *args):
    """Invoke with quiet JSON output and return the decoded result."""
    result = runner.invoke(app, ["--quiet", "--json", *args])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestGlobalOptions:
    def test_version(self, runner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_missing_config_file(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--config", "nope.toml", "tools", "list"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_config_file(self, runner, workdir) -> None:
        (workdir / "bad.toml").write_text('[vfs]\nbackend = "redis"\n', encoding="utf-8")
        result = runner.invoke(app, ["--config", "bad.toml", "tools", "list"])
        assert result.exit_code == 1


class TestToolsCommands:
    """planvfs tools ..."""

    def test_list_json(self, runner, workdir) -> None:
        tools = invoke_json(runner, "tools", "list")
        names = [t["name"] for t in tools]
        assert "create_vfs_file" in names
        assert "sync_project_architecture" in names
        assert "export_vfs_to_directory" not in names

    def test_export_tool_enabled_by_export_root(self, runner, workdir, monkeypatch) -> None:
        monkeypatch.setenv("PLANVFS_EXPORT_ROOT", str(workdir / "exports"))

        names = [t["name"] for t in invoke_json(runner, "tools", "list")]

        assert "export_vfs_to_directory" in names

    def test_list_table(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--quiet", "tools", "list"])
        assert result.exit_code == 0
        assert "read_vfs_file" in result.stdout

    def test_describe_yaml(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--quiet", "--yaml", "tools", "describe", "read_vfs_file"])

        assert result.exit_code == 0
        descriptor = yaml.safe_load(result.stdout)
        assert descriptor["name"] == "read_vfs_file"
        assert "path" in descriptor["input_schema"]["properties"]
        assert "nodeId" in descriptor["output_schema"]["properties"]

    def test_describe_pretty(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--quiet", "tools", "describe", "create_vfs_directory"])
        assert result.exit_code == 0
        assert "Input schema" in result.stdout

    def test_describe_unknown(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--quiet", "tools", "describe", "nope"])
        assert result.exit_code == 1
        assert "Unknown tool 'nope'" in result.output


class TestRunCommand:
    """planvfs run ..."""

    def write_plan(self, workdir, plan=PLAN, name="plan.json"):
        path = workdir / name
        path.write_text(json.dumps(plan), encoding="utf-8")
        return str(path)

    def test_run_and_inspect(self, runner, workdir) -> None:
        plan_path = self.write_plan(workdir)

        outputs = invoke_json(runner, "--db", "vfs.db", "run", plan_path, "-p", "demo")

        assert outputs["mkdir"]["path"] == "/src"
        assert outputs["write"]["path"] == "/src/index.ts"
        cat = runner.invoke(
            app, ["--quiet", "--db", "vfs.db", "vfs", "cat", "/src/index.ts", "-p", "demo"]
        )
        assert cat.exit_code == 0
        assert cat.stdout.strip() == "export {};"

    def test_run_pretty_output(self, runner, workdir) -> None:
        plan_path = self.write_plan(workdir)

        result = runner.invoke(app, ["run", plan_path, "--sequential"])

        assert result.exit_code == 0, result.output
        assert "Step outputs" in result.stdout

    def test_validate_only(self, runner, workdir) -> None:
        plan_path = self.write_plan(workdir, name="plan.yaml")

        summary = invoke_json(runner, "run", plan_path, "--validate")

        assert summary == {"name": "scaffold", "levels": [["mkdir"], ["write"]]}

    def test_missing_plan_file(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--quiet", "run", "missing.json"])
        assert result.exit_code == 1
        assert "Plan file not found" in result.output

    def test_cyclic_plan(self, runner, workdir) -> None:
        plan = {
            "name": "cycle",
            "steps": [
                {"id": "a", "tool": "create_vfs_directory", "dependencies": ["b"]},
                {"id": "b", "tool": "create_vfs_directory", "dependencies": ["a"]},
            ],
        }
        result = runner.invoke(app, ["--quiet", "run", self.write_plan(workdir, plan)])

        assert result.exit_code == 1
        assert "Workflow stalled" in result.output

    def test_failing_step(self, runner, workdir) -> None:
        plan = {
            "name": "broken",
            "steps": [
                {"id": "ok", "tool": "create_vfs_directory", "inputs": {"path": "/a"}},
                {
                    "id": "read",
                    "tool": "read_vfs_file",
                    "dependencies": ["ok"],
                    "inputs": {"path": "/missing.txt"},
                },
            ],
        }
        result = runner.invoke(app, ["--quiet", "run", self.write_plan(workdir, plan)])

        assert result.exit_code == 1
        assert "Step 'read' (read_vfs_file) failed" in result.output
        assert "1 step(s) completed" in result.output


class TestVfsCommands:
    """planvfs vfs ..."""

    def write_blueprint(self, workdir) -> str:
        path = workdir / "blueprint.yaml"
        path.write_text(yaml.safe_dump(BLUEPRINT), encoding="utf-8")
        return str(path)

    def test_sync_tree_and_version(self, runner, workdir) -> None:
        blueprint = self.write_blueprint(workdir)

        result = invoke_json(runner, "--db", "vfs.db", "vfs", "sync", blueprint)
        assert (result["files"], result["directories"]) == (2, 2)

        entries = invoke_json(runner, "--db", "vfs.db", "vfs", "tree")
        assert [e["path"] for e in entries] == [
            "/app",
            "/app/pkg",
            "/app/pkg/__init__.py",
            "/app/main.py",
        ]

        first = invoke_json(runner, "--db", "vfs.db", "vfs", "version")["version"]
        second = invoke_json(runner, "--db", "vfs.db", "vfs", "version")["version"]
        assert first == second
        assert len(first) == 64

    def test_pretty_tree(self, runner, workdir) -> None:
        blueprint = self.write_blueprint(workdir)
        runner.invoke(app, ["--quiet", "--db", "vfs.db", "vfs", "sync", blueprint])

        result = runner.invoke(app, ["--quiet", "--db", "vfs.db", "vfs", "tree"])

        assert result.exit_code == 0
        assert "main.py" in result.stdout
        assert "pkg/" in result.stdout

    def test_sync_missing_blueprint(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--quiet", "vfs", "sync", "nope.yaml"])
        assert result.exit_code == 1
        assert "Blueprint file not found" in result.output

    def test_sync_invalid_blueprint(self, runner, workdir) -> None:
        (workdir / "bad.json").write_text('{"type": "symlink", "name": "x"}', encoding="utf-8")
        result = runner.invoke(app, ["--quiet", "vfs", "sync", "bad.json"])
        assert result.exit_code == 1

    def test_cat_missing_file(self, runner, workdir) -> None:
        result = runner.invoke(app, ["--quiet", "vfs", "cat", "/nope.txt"])
        assert result.exit_code == 1
        assert "VFS error" in result.output

    def test_export(self, runner, workdir) -> None:
        invoke_json(runner, "--db", "vfs.db", "vfs", "sync", self.write_blueprint(workdir))

        result = invoke_json(runner, "--db", "vfs.db", "vfs", "export", "out", "--clean")

        assert (result["files"], result["directories"]) == (2, 2)
        assert (workdir / "out" / "app" / "main.py").read_text(encoding="utf-8") == "print('hi')"
        assert (workdir / "out" / "app" / "pkg" / "__init__.py").read_text(encoding="utf-8") == ""

    def test_projects_are_separate(self, runner, workdir) -> None:
        blueprint = self.write_blueprint(workdir)
        invoke_json(runner, "--db", "vfs.db", "vfs", "sync", blueprint, "-p", "a")

        assert invoke_json(runner, "--db", "vfs.db", "vfs", "tree", "-p", "b") == []
