"""Per-build staging workspaces and the tree copy shared by staging and deployment."""

from collections.abc import Callable, Iterable
import fnmatch
import os
from pathlib import Path
import shutil
from typing import Self
import uuid

from attrs import define
from pyvider.telemetry import logger

from ..exceptions import StagingError

WORKSPACES_DIRNAME = "build"
COMPLETE_MARKER = ".complete"

IgnoreFunc = Callable[[str, list[str]], Iterable[str]]


def create_ignore_func(root: Path, patterns: Iterable[str]) -> IgnoreFunc:
    """Creates a shutil.copytree-style ignore function for the given glob patterns."""
    patterns = list(patterns)

    def ignore(dir_path_str: str, names: list[str]) -> Iterable[str]:
        dir_path = Path(dir_path_str)
        ignored_names = set()
        for name in names:
            rel_path_str = (dir_path / name).relative_to(root).as_posix()
            for pattern in patterns:
                if fnmatch.fnmatch(rel_path_str, pattern) or fnmatch.fnmatch(
                    name, pattern
                ):
                    ignored_names.add(name)
                    break
        return ignored_names

    return ignore


def copy_tree(src: Path, dst: Path, ignore: IgnoreFunc | None = None) -> None:
    """
    Recursively copies ``src`` into ``dst``, creating directories as needed.

    Unlike shutil.copytree this stops at the first OSError instead of collecting
    errors, and it merges into an existing destination. Whatever was copied
    before the failure is left in place.
    """
    dst.mkdir(parents=True, exist_ok=True)
    names = sorted(os.listdir(src))
    ignored = set(ignore(str(src), names)) if ignore else set()
    for name in names:
        if name in ignored:
            continue
        src_path = src / name
        dst_path = dst / name
        if src_path.is_dir():
            copy_tree(src_path, dst_path, ignore)
        else:
            shutil.copy2(src_path, dst_path)


def ensure_dir(path: Path) -> None:
    """Creates ``path`` if it is missing; an existing directory is fine."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StagingError(f"Failed to create directory {path}: {e}") from e


@define
class StagingWorkspace:
    """A uniquely named directory owned by exactly one build attempt."""

    root: Path
    workspace_id: str

    @classmethod
    def create(cls, build_dir: Path) -> Self:
        workspace_id = str(uuid.uuid4())
        root = build_dir / workspace_id
        try:
            root.mkdir()
        except OSError as e:
            raise StagingError(f"Failed to create staging workspace {root}: {e}") from e
        logger.debug(f"Created staging workspace {root}")
        return cls(root=root, workspace_id=workspace_id)

    def stage(
        self, project: str, source_root: Path, ignore: IgnoreFunc | None = None
    ) -> Path:
        """Copies a project's source tree into the workspace, returning the staged root."""
        staged_root = self.root / project
        workspace_root = self.root.resolve()
        resolved = staged_root.resolve()
        if resolved == workspace_root or not resolved.is_relative_to(workspace_root):
            raise StagingError(
                f"Project '{project}' would be staged outside {self.root}"
            )
        try:
            copy_tree(source_root, staged_root, ignore)
        except OSError as e:
            raise StagingError(
                f"Failed to copy '{project}' from {source_root} to {staged_root}: {e}"
            ) from e
        return staged_root

    def mark_complete(self) -> None:
        marker = self.root / COMPLETE_MARKER
        try:
            marker.touch()
        except OSError as e:
            raise StagingError(
                f"Failed to mark workspace {self.root} complete: {e}"
            ) from e

    @property
    def is_complete(self) -> bool:
        return (self.root / COMPLETE_MARKER).exists()


def list_workspaces(build_dir: Path) -> list[StagingWorkspace]:
    if not build_dir.is_dir():
        return []
    return [
        StagingWorkspace(root=path, workspace_id=path.name)
        for path in sorted(build_dir.iterdir())
        if path.is_dir()
    ]


def clean_workspaces(build_dir: Path, keep_incomplete: bool = False) -> list[Path]:
    """Removes staging workspaces, optionally keeping failed ones for inspection."""
    removed = []
    for workspace in list_workspaces(build_dir):
        if keep_incomplete and not workspace.is_complete:
            logger.debug(f"Keeping incomplete workspace {workspace.root}")
            continue
        shutil.rmtree(workspace.root)
        removed.append(workspace.root)
    return removed
