"""
Shared pytest fixtures for Corpus Miner tests.

Provides small real git repositories built with the git CLI, which the git
layer, the crawler and the end-to-end pipeline tests clone and walk.
"""

import os
import subprocess
from pathlib import Path
from typing import Dict, Optional

import pytest

from corpus_miner.utils.exception_logger import ExceptionLogger


def git(repo_path: Path, *args: str) -> str:
    """Run a git command in repo_path and return its stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo_path,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


class GitRepoBuilder:
    """Builds a throwaway repository commit by commit."""

    def __init__(self, path: Path):
        self.path = path
        self._clock = 1500000000
        path.mkdir(parents=True)
        git(path, "init", "--quiet")
        git(path, "symbolic-ref", "HEAD", "refs/heads/main")
        git(path, "config", "user.name", "Test")
        git(path, "config", "user.email", "test@test.com")
        git(path, "config", "commit.gpgsign", "false")

    def commit(
        self,
        files: Optional[Dict[str, str]] = None,
        delete: tuple = (),
        message: str = "change",
    ) -> str:
        """Write files, remove paths in delete, commit, return the hash."""
        for rel_path, content in (files or {}).items():
            target = self.path / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
            git(self.path, "add", rel_path)
        for rel_path in delete:
            git(self.path, "rm", "--quiet", rel_path)

        # fixed, increasing dates keep history order deterministic
        self._clock += 60
        date = f"{self._clock} +0000"
        subprocess.run(
            ["git", "commit", "--quiet", "-m", message],
            cwd=self.path,
            check=True,
            capture_output=True,
            env={
                **os.environ,
                "GIT_AUTHOR_DATE": date,
                "GIT_COMMITTER_DATE": date,
            },
        )
        return self.head()

    def branch(self, name: str, start: str = "HEAD") -> None:
        git(self.path, "branch", name, start)

    def checkout(self, name: str) -> None:
        git(self.path, "checkout", "--quiet", name)

    def rename(self, old: str, new: str, message: str = "rename") -> str:
        (self.path / new).parent.mkdir(parents=True, exist_ok=True)
        git(self.path, "mv", old, new)
        return self.commit(message=message)

    def head(self) -> str:
        return git(self.path, "rev-parse", "HEAD").strip()

    @property
    def url(self) -> str:
        return str(self.path)


@pytest.fixture
def make_repo(tmp_path):
    """Factory fixture: make_repo("name") returns a GitRepoBuilder."""

    def _make(name: str = "origin_repo") -> GitRepoBuilder:
        return GitRepoBuilder(tmp_path / "sources" / name)

    return _make


@pytest.fixture(autouse=True)
def reset_exception_logger():
    """ExceptionLogger is a process-wide singleton; isolate it per test."""
    ExceptionLogger._instance = None
    yield
    ExceptionLogger._instance = None
