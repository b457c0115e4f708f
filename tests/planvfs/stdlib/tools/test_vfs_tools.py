"""Tests for the VFS tools."""

from __future__ import annotations

import pytest

from planvfs.kernel.context.execution_context import ExecutionContext
from planvfs.kernel.exceptions import (
    ConfigurationError,
    ContentSizeExceededError,
    InvalidNodeTypeError,
    NotFoundError,
    ValidationError,
)
from planvfs.stdlib.tools.vfs_tools import (
    CreateVfsDirectoryTool,
    CreateVfsFileTool,
    DeleteVfsNodeTool,
    GetProjectVersionTool,
    ListVfsDirectoryTool,
    MoveVfsNodeTool,
    ReadVfsFileTool,
    RenameVfsNodeTool,
    UpdateVfsFileTool,
)

PROJECT_ID = "test-project"


class TestCreateTools:
    """create_vfs_file and create_vfs_directory."""

    @pytest.mark.asyncio
    async def test_create_file_with_parents(self, project_context, memory_store) -> None:
        result = await CreateVfsFileTool().execute(
            project_context, {"path": "/src/app/main.ts", "content": "let x = 1;"}
        )

        node = await memory_store.arequire_path(PROJECT_ID, "/src/app/main.ts")
        assert result == {"success": True, "path": "/src/app/main.ts", "nodeId": node.id}
        assert node.content == "let x = 1;"
        assert (await memory_store.arequire_path(PROJECT_ID, "/src/app")).is_directory

    @pytest.mark.asyncio
    async def test_create_existing_file_is_idempotent(self, project_context) -> None:
        tool = CreateVfsFileTool()
        first = await tool.execute(project_context, {"path": "/a.txt", "content": "one"})
        second = await tool.execute(project_context, {"path": "/a.txt"})

        assert first["nodeId"] == second["nodeId"]
        read = await ReadVfsFileTool().execute(project_context, {"path": "/a.txt"})
        assert read["content"] == "one"

    @pytest.mark.asyncio
    async def test_create_file_over_directory(self, project_context) -> None:
        await CreateVfsDirectoryTool().execute(project_context, {"path": "/src"})

        with pytest.raises(InvalidNodeTypeError):
            await CreateVfsFileTool().execute(project_context, {"path": "/src"})

    @pytest.mark.asyncio
    async def test_create_file_too_large(self, project_context) -> None:
        with pytest.raises(ContentSizeExceededError):
            await CreateVfsFileTool().execute(
                project_context, {"path": "/big.txt", "content": "x" * 2048}
            )

    @pytest.mark.asyncio
    async def test_create_directory(self, project_context, memory_store) -> None:
        result = await CreateVfsDirectoryTool().execute(project_context, {"path": "/a/b"})

        node = await memory_store.arequire_path(PROJECT_ID, "/a/b")
        assert node.is_directory
        assert result["nodeId"] == node.id
        assert result["path"] == "/a/b"

    @pytest.mark.asyncio
    async def test_create_directory_over_file(self, project_context) -> None:
        await CreateVfsFileTool().execute(project_context, {"path": "/a"})

        with pytest.raises(InvalidNodeTypeError):
            await CreateVfsDirectoryTool().execute(project_context, {"path": "/a"})

    @pytest.mark.asyncio
    async def test_missing_path_input(self, project_context) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await CreateVfsFileTool().execute(project_context, {"content": "x"})
        assert exc_info.value.field == "path"

    @pytest.mark.asyncio
    async def test_context_without_store(self) -> None:
        with pytest.raises(ConfigurationError, match="no VFS store"):
            await CreateVfsFileTool().execute(ExecutionContext(project_id="p"), {"path": "/a"})

    @pytest.mark.asyncio
    async def test_context_without_project(self, memory_store) -> None:
        with pytest.raises(ConfigurationError, match="no project_id"):
            await CreateVfsFileTool().execute(
                ExecutionContext(store=memory_store), {"path": "/a"}
            )


class TestReadAndListTools:
    """read_vfs_file, list_vfs_directory and get_project_version."""

    @pytest.fixture
    async def populated(self, project_context):
        create = CreateVfsFileTool()
        await create.execute(project_context, {"path": "/src/index.ts", "content": "index"})
        await create.execute(project_context, {"path": "/src/lib/util.ts", "content": "util"})
        await create.execute(project_context, {"path": "/README.md", "content": "# readme"})
        return project_context

    @pytest.mark.asyncio
    async def test_read_file(self, populated) -> None:
        result = await ReadVfsFileTool().execute(populated, {"path": "/src/index.ts"})
        assert result["content"] == "index"
        assert result["path"] == "/src/index.ts"

    @pytest.mark.asyncio
    async def test_read_missing_file(self, populated) -> None:
        with pytest.raises(NotFoundError):
            await ReadVfsFileTool().execute(populated, {"path": "/nope.ts"})

    @pytest.mark.asyncio
    async def test_read_directory(self, populated) -> None:
        with pytest.raises(InvalidNodeTypeError):
            await ReadVfsFileTool().execute(populated, {"path": "/src"})

    @pytest.mark.asyncio
    async def test_list_root(self, populated) -> None:
        result = await ListVfsDirectoryTool().execute(populated, {})

        assert result["path"] == "/"
        assert [(e["name"], e["type"]) for e in result["entries"]] == [
            ("src", "DIRECTORY"),
            ("README.md", "FILE"),
        ]

    @pytest.mark.asyncio
    async def test_list_recursive(self, populated) -> None:
        params = {"path": "/src", "recursive": True}
        result = await ListVfsDirectoryTool().execute(populated, params)

        assert [e["path"] for e in result["entries"]] == [
            "/src/lib",
            "/src/lib/util.ts",
            "/src/index.ts",
        ]

    @pytest.mark.asyncio
    async def test_project_version_tracks_content(self, populated) -> None:
        version_tool = GetProjectVersionTool()
        before = (await version_tool.execute(populated, {}))["version"]

        await UpdateVfsFileTool().execute(populated, {"path": "/README.md", "content": "changed"})
        after = (await version_tool.execute(populated, {}))["version"]

        assert len(before) == 64
        assert before != after


class TestMutationTools:
    """update, delete, rename and move."""

    @pytest.mark.asyncio
    async def test_update_file(self, project_context, memory_store) -> None:
        created = await CreateVfsFileTool().execute(project_context, {"path": "/a.txt"})

        result = await UpdateVfsFileTool().execute(
            project_context, {"path": "/a.txt", "content": "new"}
        )

        assert result["nodeId"] == created["nodeId"]
        assert (await memory_store.arequire_path(PROJECT_ID, "/a.txt")).content == "new"

    @pytest.mark.asyncio
    async def test_update_missing_file(self, project_context) -> None:
        with pytest.raises(NotFoundError):
            await UpdateVfsFileTool().execute(project_context, {"path": "/x", "content": ""})

    @pytest.mark.asyncio
    async def test_delete_directory_cascades(self, project_context, memory_store) -> None:
        await CreateVfsFileTool().execute(project_context, {"path": "/src/a/b.ts"})

        result = await DeleteVfsNodeTool().execute(project_context, {"path": "/src"})

        assert result == {"success": True, "path": "/src", "deleted": 3}
        assert await memory_store.aresolve_path(PROJECT_ID, "/src/a/b.ts") is None

    @pytest.mark.asyncio
    async def test_rename(self, project_context, memory_store) -> None:
        created = await CreateVfsFileTool().execute(project_context, {"path": "/src/old.ts"})

        result = await RenameVfsNodeTool().execute(
            project_context, {"path": "/src/old.ts", "new_name": "new.ts"}
        )

        assert result == {"success": True, "path": "/src/new.ts", "nodeId": created["nodeId"]}
        assert await memory_store.aresolve_path(PROJECT_ID, "/src/old.ts") is None

    @pytest.mark.asyncio
    async def test_move(self, project_context) -> None:
        created = await CreateVfsFileTool().execute(project_context, {"path": "/a/file.ts"})
        await CreateVfsDirectoryTool().execute(project_context, {"path": "/b"})

        result = await MoveVfsNodeTool().execute(
            project_context, {"path": "/a/file.ts", "destination": "/b"}
        )

        assert result["path"] == "/b/file.ts"
        assert result["nodeId"] == created["nodeId"]
