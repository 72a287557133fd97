"""
Project identity and workspace lifecycle.

ProjectRegistry hands out project ids; WorkspaceManager owns the clone
directories under the temp root, one per running project.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from ..models import Project
from ..storage.id_allocator import IdAllocator

logger = logging.getLogger(__name__)


class ProjectRegistry:
    """Creates projects with globally unique, never reused ids."""

    def __init__(self, allocator: Optional[IdAllocator] = None):
        self._allocator = allocator or IdAllocator()

    @property
    def next_id(self) -> int:
        return self._allocator.next_id

    def create_auto(self, git_url: str) -> Project:
        """Create a project with the next free id."""
        return Project(id=self._allocator.allocate(), git_url=git_url)

    def create_with_id(self, git_url: str, project_id: int) -> Project:
        """Create a project with an explicit id, e.g. one from a previous run.

        Later auto-assigned ids are guaranteed to be greater than project_id.
        """
        if project_id < 0:
            raise ValueError(f"Project id must be non-negative, got {project_id}")
        self._allocator.raise_floor(project_id + 1)
        return Project(id=project_id, git_url=git_url)


class WorkspaceManager:
    """Places and removes project clones under the temp root."""

    def __init__(self, temp_root: Path):
        self.temp_root = Path(temp_root)

    def workspace_for(self, project: Project) -> Path:
        return self.temp_root / str(project.id)

    def prepare(self, project: Project) -> Path:
        """Assign the project its workspace path, clearing leftovers.

        A directory left behind by a previous failed run is removed so the
        clone can be retried into it.
        """
        path = self.workspace_for(project)
        if path.exists():
            logger.info(f"Removing stale workspace {path}")
            shutil.rmtree(path)
        self.temp_root.mkdir(parents=True, exist_ok=True)
        project.local_path = path
        return path

    def teardown(self, project: Project) -> None:
        """Delete the project's workspace, whatever state it is in."""
        path = project.local_path or self.workspace_for(project)
        if path.exists():
            shutil.rmtree(path)
            logger.info(f"{path} deleted.")

    def clear(self) -> int:
        """Remove everything under the temp root.

        Returns:
            Number of entries removed
        """
        if not self.temp_root.exists():
            return 0
        removed = 0
        for entry in self.temp_root.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1
        return removed

