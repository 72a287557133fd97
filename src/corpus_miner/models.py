"""Core data model: projects, file snapshots and crawl states."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class CrawlState(str, Enum):
    """Where a project currently is in its crawl."""

    PENDING = "pending"
    CLONING = "cloning"
    BRANCH_ITERATING = "branch_iterating"
    FILE_ITERATING = "file_iterating"
    HISTORY_ITERATING = "history_iterating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Project:
    """One mined git repository.

    Projects are created through ProjectRegistry so that ids stay unique
    across the whole run.
    """

    id: int
    git_url: str
    local_path: Optional[Path] = None
    has_denied_files: bool = False
    state: CrawlState = CrawlState.PENDING
    branches_visited: List[str] = field(default_factory=list)
    branches_skipped: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.git_url} [{self.id}]"


@dataclass(unsafe_hash=True)
class FileSnapshot:
    """One (commit, path) pair of a project.

    Identity is the commit hash plus the path inside that commit; two
    snapshots with the same pair are equal regardless of the other fields.
    """

    commit: str
    rel_path: str
    id: int = field(default=-1, compare=False)
    content_id: int = field(default=-1, compare=False)
    time: int = field(default=0, compare=False)

    @property
    def identity(self) -> tuple:
        return (self.commit, self.rel_path)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "commit": self.commit,
            "path": self.rel_path,
            "content_id": self.content_id,
            "time": self.time,
        }
