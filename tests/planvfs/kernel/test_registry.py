"""Tests for ToolRegistry."""

from __future__ import annotations

import pytest

from planvfs.kernel.exceptions import ToolNotFoundError
from planvfs.kernel.registry import ToolRegistry
from planvfs.stdlib.tools import FunctionTool, register_builtin_tools, tool


@tool
def ping(context) -> str:
    """Answer with pong."""
    return "pong"


@tool(name="add")
def add_numbers(context, a: int, b: int = 0) -> int:
    """Add two numbers."""
    return a + b


class TestToolRegistry:
    """Tests for registration and lookup."""

    def test_register_and_get(self) -> None:
        registry = ToolRegistry()
        registry.register(ping)

        assert registry.get("ping") is ping
        assert registry.require("ping") is ping
        assert "ping" in registry
        assert len(registry) == 1

    def test_constructor_registers_tools(self) -> None:
        registry = ToolRegistry([ping, add_numbers])
        assert registry.names() == ["ping", "add"]
        assert list(registry) == [ping, add_numbers]

    def test_missing_tool(self) -> None:
        registry = ToolRegistry([ping])

        assert registry.get("nope") is None
        with pytest.raises(ToolNotFoundError) as exc_info:
            registry.require("nope", step_id="s1")

        assert exc_info.value.tool_name == "nope"
        assert exc_info.value.step_id == "s1"
        assert exc_info.value.available == ["ping"]
        assert "Available: ping" in str(exc_info.value)

    def test_reregistering_replaces(self) -> None:
        replacement = FunctionTool(lambda context: "other", name="ping")
        registry = ToolRegistry([ping])

        registry.register(replacement)

        assert registry.get("ping") is replacement
        assert len(registry) == 1

    def test_rejects_non_tools(self) -> None:
        with pytest.raises(TypeError, match="Expected a Tool"):
            ToolRegistry().register(object())

    def test_unregister(self) -> None:
        registry = ToolRegistry([ping])
        assert registry.unregister("ping") is True
        assert registry.unregister("ping") is False
        assert "ping" not in registry

    def test_describe(self) -> None:
        (descriptor,) = ToolRegistry([add_numbers]).describe()

        assert descriptor["name"] == "add"
        assert descriptor["description"] == "Add two numbers."
        assert descriptor["input_schema"]["required"] == ["a"]
        assert set(descriptor["input_schema"]["properties"]) == {"a", "b"}
        assert descriptor["output_schema"] == {}

    def test_builtin_tools(self, builtin_registry) -> None:
        assert set(builtin_registry.names()) == {
            "create_vfs_file",
            "create_vfs_directory",
            "read_vfs_file",
            "update_vfs_file",
            "list_vfs_directory",
            "delete_vfs_node",
            "rename_vfs_node",
            "move_vfs_node",
            "get_project_version",
            "sync_project_architecture",
            "create_project_architecture",
        }
        for descriptor in builtin_registry.describe():
            assert descriptor["description"]
            assert descriptor["input_schema"]["type"] == "object"

    def test_export_tool_needs_an_export_root(self, tmp_path) -> None:
        registry = register_builtin_tools(ToolRegistry(), export_root=tmp_path)

        assert "export_vfs_to_directory" in registry
        assert registry.require("export_vfs_to_directory").export_root == tmp_path.resolve()
