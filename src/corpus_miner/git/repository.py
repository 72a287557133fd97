"""
Git operations on a cloned project workspace.

Provides cloning, branch enumeration and checkout, tracked-file listing,
per-file history and blob retrieval. Uses run_git_command() from git_runner
for all git operations.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from ..errors import BranchCheckoutError, CloneError, GitError
from ..utils.git_runner import run_git_command

logger = logging.getLogger(__name__)


@dataclass
class FileHistoryEntry:
    """One commit in the history of a file."""

    commit: str
    rel_path: str  # path of the file as of this commit (differs after renames)
    time: int  # author timestamp, seconds since epoch


class GitRepository:
    """Git access to one local clone."""

    # Commit headers are framed by RS/US control bytes; with -z every path
    # after a header is NUL terminated and never quoted
    HISTORY_FORMAT = "%x1e%H %at%x1f"
    _HISTORY_HEADER = re.compile(r"\x1e([0-9a-f]+) (\d*)\x1f")
    REMOTE = "origin"

    def __init__(
        self,
        repo_path: Path,
        command_timeout: Optional[float] = None,
        follow_renames: bool = True,
    ):
        """Initialize GitRepository.

        Args:
            repo_path: Path to the cloned repository
            command_timeout: Per-command timeout in seconds (None waits forever)
            follow_renames: Whether file history follows renames
        """
        self.repo_path = Path(repo_path)
        self.command_timeout = command_timeout
        self.follow_renames = follow_renames

    @classmethod
    def clone(
        cls,
        git_url: str,
        target: Path,
        clone_timeout: Optional[float] = None,
        command_timeout: Optional[float] = None,
        follow_renames: bool = True,
    ) -> "GitRepository":
        """Clone git_url into target.

        Raises:
            CloneError: If git cannot clone the repository
        """
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            run_git_command(
                ["git", "clone", "--quiet", git_url, str(target)],
                cwd=target.parent,
                timeout=clone_timeout,
            )
        except subprocess.CalledProcessError as e:
            raise CloneError(git_url, (e.stderr or "").strip()) from e
        except subprocess.TimeoutExpired as e:
            raise CloneError(git_url, f"timed out after {e.timeout}s") from e
        return cls(target, command_timeout, follow_renames)

    def has_commits(self) -> bool:
        """False for an empty repository (unborn HEAD)."""
        result = self._run(
            ["git", "rev-parse", "--verify", "--quiet", "HEAD"], check=False
        )
        return result.returncode == 0

    def get_current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None for detached/unborn HEAD."""
        result = self._run(
            ["git", "symbolic-ref", "--quiet", "--short", "HEAD"], check=False
        )
        branch = result.stdout.strip() if result.returncode == 0 else ""
        if not branch or not self.has_commits():
            return None
        return branch

    def get_branches(self) -> Set[str]:
        """All branch names known locally or on the origin remote."""
        result = self._run(
            [
                "git",
                "for-each-ref",
                "--format=%(refname)",
                "refs/heads",
                f"refs/remotes/{self.REMOTE}",
            ]
        )

        branches: Set[str] = set()
        remote_prefix = f"refs/remotes/{self.REMOTE}/"
        for ref in result.stdout.splitlines():
            ref = ref.strip()
            if ref.startswith("refs/heads/"):
                branches.add(ref[len("refs/heads/"):])
            elif ref.startswith(remote_prefix):
                name = ref[len(remote_prefix):]
                if name != "HEAD":
                    branches.add(name)
        return branches

    def checkout(self, branch: str) -> None:
        """Check out branch, creating a tracking branch from origin if needed.

        Raises:
            BranchCheckoutError: If the branch cannot be checked out
        """
        local = self._run(
            ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
            check=False,
        )
        if local.returncode == 0:
            cmd = ["git", "checkout", "--quiet", "--force", branch, "--"]
        else:
            cmd = [
                "git",
                "checkout",
                "--quiet",
                "--force",
                "-b",
                branch,
                "--track",
                f"{self.REMOTE}/{branch}",
            ]
        try:
            self._run(cmd)
        except subprocess.CalledProcessError as e:
            raise BranchCheckoutError(branch, (e.stderr or "").strip()) from e
        except subprocess.TimeoutExpired as e:
            raise BranchCheckoutError(branch, f"timed out after {e.timeout}s") from e

    def list_tracked_files(self) -> List[str]:
        """Files git currently tracks on the checked-out branch."""
        if not self.has_commits():
            return []
        result = self._run(
            ["git", "ls-tree", "-r", "-z", "--name-only", "--full-tree", "HEAD"]
        )
        return [name for name in result.stdout.split("\x00") if name]

    def get_file_history(self, rel_path: str) -> List[FileHistoryEntry]:
        """Commits that touched rel_path, newest first.

        With follow_renames, entries older than a rename carry the file's
        previous path.
        """
        cmd = [
            "git",
            "log",
            "-z",
            f"--format={self.HISTORY_FORMAT}",
            "--name-only",
        ]
        if self.follow_renames:
            cmd.append("--follow")
        cmd.extend(["--", rel_path])

        try:
            result = self._run(cmd)
        except subprocess.CalledProcessError as e:
            raise GitError(f"Unable to read history of {rel_path}: {e.stderr}") from e

        return self._parse_history_output(result.stdout, rel_path)

    def _parse_history_output(
        self, output: str, rel_path: str
    ) -> List[FileHistoryEntry]:
        entries: List[FileHistoryEntry] = []
        headers = list(self._HISTORY_HEADER.finditer(output))
        path = rel_path

        for index, header in enumerate(headers):
            end = headers[index + 1].start() if index + 1 < len(headers) else None
            # --name-only: the path as of this commit, NUL terminated. Merge
            # commits list no path and keep the one of the newer entry.
            names = output[header.end() : end].lstrip("\n\x00").split("\x00")
            if names[0]:
                path = names[0]
            entries.append(
                FileHistoryEntry(
                    commit=header.group(1),
                    rel_path=path,
                    time=int(header.group(2)) if header.group(2) else 0,
                )
            )

        return entries

    def get_file_revision(self, entry: FileHistoryEntry) -> Optional[bytes]:
        """Raw contents of entry.rel_path at entry.commit.

        Returns:
            The blob bytes, or None if the file does not exist at that commit
            (the commit deleted it)
        """
        result = self._run(
            ["git", "cat-file", "blob", f"{entry.commit}:{entry.rel_path}"],
            check=False,
            text=False,
        )
        if result.returncode != 0:
            logger.debug(
                f"{entry.rel_path} not present at {entry.commit} in {self.repo_path}"
            )
            return None
        return result.stdout

    def _run(self, cmd: List[str], check: bool = True, text: bool = True):
        kwargs = {}
        if text:
            # paths round-trip back into later git commands unchanged
            kwargs = {"encoding": "utf-8", "errors": "surrogateescape"}
        return run_git_command(
            cmd,
            cwd=self.repo_path,
            check=check,
            text=text,
            timeout=self.command_timeout,
            **kwargs,
        )
