"""Write a project's VFS out to a real directory.

Used to hand a generated project to ordinary tooling (builds, previews,
archives). The VFS root maps onto ``target_dir``.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiofiles

from planvfs.kernel.exceptions import VfsError
from planvfs.kernel.logging import get_logger
from planvfs.kernel.vfs.store import VfsNodeStore

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ExportResult:
    target_dir: Path
    files: int
    directories: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "targetDir": str(self.target_dir),
            "files": self.files,
            "directories": self.directories,
        }


def _ensure_within(base: Path, target: Path, requested: str) -> Path:
    if not target.is_relative_to(base):
        raise VfsError(requested, f"resolves outside export directory '{base}'")
    return target


def _safe_target(base: Path, vfs_path: str) -> Path:
    """Map a VFS path under ``base``, refusing anything that escapes it."""
    return _ensure_within(base, (base / vfs_path.lstrip("/")).resolve(), vfs_path)


def _confined_target(root: Path, target_dir: str | Path) -> Path:
    """Resolve ``target_dir`` against ``root`` and refuse anything outside it.

    Relative targets are taken relative to ``root``; absolute targets must
    already lie below it.
    """
    candidate = Path(target_dir)
    if not candidate.is_absolute():
        candidate = root / candidate
    return _ensure_within(root, candidate.resolve(), str(target_dir))


async def aexport_to_directory(
    store: VfsNodeStore,
    project_id: str,
    target_dir: str | Path,
    *,
    clean: bool = False,
    root: str | Path | None = None,
) -> ExportResult:
    """Export every node of ``project_id`` below ``target_dir``.

    Args
    ----
        store: Store to read from
        project_id: Project to export
        target_dir: Destination directory, created if missing
        clean: Remove ``target_dir`` first so it mirrors the VFS exactly
        root: When given, ``target_dir`` must resolve inside this directory

    Returns
    -------
        ExportResult with the number of files and directories written.

    Raises
    ------
        VfsError: If ``root`` is given and ``target_dir`` escapes it.
    """
    if root is None:
        base = Path(target_dir).resolve()
    else:
        base = _confined_target(Path(root).resolve(), target_dir)
    if clean and base.exists():
        shutil.rmtree(base)
    base.mkdir(parents=True, exist_ok=True)

    tree = await store.aget_tree(project_id)
    files = directories = 0
    if tree.root is not None:
        for entry in tree.descendants(tree.root.id):
            target = _safe_target(base, entry.path)
            if entry.node.is_directory:
                target.mkdir(parents=True, exist_ok=True)
                directories += 1
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "w", encoding="utf-8") as f:
                await f.write(entry.node.content or "")
            files += 1

    logger.info(
        "Exported project {project} to {target}: {files} file(s), {directories} director(ies)",
        project=project_id,
        target=base,
        files=files,
        directories=directories,
    )
    return ExportResult(target_dir=base, files=files, directories=directories)


__all__ = ["ExportResult", "aexport_to_directory"]
