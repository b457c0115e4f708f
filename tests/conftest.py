"""Configuration file for pytest containing fixtures and configuration.

This module provides fixtures that can be used across multiple test files:
- memory_store: A VFS node store over a fresh in-memory backend
- project_context: An execution context bound to ``memory_store``
- builtin_registry: A tool registry with every built-in tool
"""

import pytest

from planvfs.drivers.vfs import InMemoryVfsBackend
from planvfs.kernel.context.execution_context import ExecutionContext, clear_execution_context
from planvfs.kernel.registry import ToolRegistry
from planvfs.kernel.vfs.store import VfsNodeStore
from planvfs.stdlib.tools import register_builtin_tools

PROJECT_ID = "test-project"


@pytest.fixture(autouse=True)
def _clean_execution_context():
    """Make sure no run state leaks between tests."""
    yield
    clear_execution_context()


@pytest.fixture
def memory_store() -> VfsNodeStore:
    return VfsNodeStore(InMemoryVfsBackend(), max_file_size=1024)


@pytest.fixture
def project_context(memory_store: VfsNodeStore) -> ExecutionContext:
    return ExecutionContext(project_id=PROJECT_ID, store=memory_store)


@pytest.fixture
def builtin_registry() -> ToolRegistry:
    return register_builtin_tools(ToolRegistry())
