"""POSIX-style path helpers for the VFS.

Paths are forward-slash separated and always interpreted from the project
root; a leading ``/`` is optional. A trailing ``/`` marks directory intent.
"""

from __future__ import annotations

from planvfs.kernel.exceptions import InvalidNameError, NotFoundError

SEPARATOR = "/"
_RESERVED_NAMES = frozenset({".", ".."})


def split_path(path: str) -> list[str]:
    """Split a path into normalized segments.

    Empty segments and ``.`` are dropped; ``..`` pops the previous segment.

    Raises
    ------
    NotFoundError
        If ``..`` would climb above the project root.

    Examples
    --------
    >>> split_path("/src//app/./../index.ts")
    ['src', 'index.ts']
    >>> split_path("/")
    []
    """
    segments: list[str] = []
    for part in path.split(SEPARATOR):
        if part in ("", "."):
            continue
        if part == "..":
            if not segments:
                raise NotFoundError(path, "path escapes the project root")
            segments.pop()
            continue
        segments.append(part)
    return segments


def is_directory_path(path: str) -> bool:
    """Whether ``path`` expresses directory intent (trailing separator)."""
    return path.endswith(SEPARATOR)


def join_path(segments: list[str]) -> str:
    """Build an absolute path from segments; no segments means the root."""
    return SEPARATOR + SEPARATOR.join(segments)


def normalize_path(path: str) -> str:
    """Return the canonical absolute form of ``path`` (no trailing separator)."""
    return join_path(split_path(path))


def validate_name(name: str) -> str:
    """Check that ``name`` is usable as a single node name.

    Raises
    ------
    InvalidNameError
        If the name is empty, reserved or contains a separator.
    """
    if not name or not name.strip():
        raise InvalidNameError(name, "name must not be empty")
    if SEPARATOR in name:
        raise InvalidNameError(name, f"name must not contain '{SEPARATOR}'")
    if name in _RESERVED_NAMES:
        raise InvalidNameError(name, f"'{name}' is a reserved name")
    return name


__all__ = [
    "SEPARATOR",
    "is_directory_path",
    "join_path",
    "normalize_path",
    "split_path",
    "validate_name",
]
