"""
Branch and commit crawler.

For one cloned project, visits every branch (the checked-out branch first),
every accepted file tracked on that branch, and every commit in that file's
history. Each (commit, path) pair is fetched and stored at most once per
project; the content store deduplicates bytes across projects.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from ..errors import BranchCheckoutError
from ..filtering.pattern_list import Classification, PatternList
from ..git.repository import FileHistoryEntry, GitRepository
from ..models import CrawlState, FileSnapshot, Project
from ..storage.content_store import ContentStore
from .snapshot_set import SnapshotSet

logger = logging.getLogger(__name__)


@dataclass
class CrawlResult:
    """Outcome of crawling one project."""

    snapshots: SnapshotSet
    branches_crawled: int = 0
    branches_skipped: int = 0
    files_accepted: int = 0
    files_denied: int = 0
    files_ignored: int = 0
    duplicate_snapshots: int = 0
    missing_revisions: int = 0

    @property
    def snapshots_stored(self) -> int:
        return len(self.snapshots)


class BranchCrawler:
    """Crawls all branches of a cloned project into the content store."""

    def __init__(self, classifier: PatternList, content_store: ContentStore):
        self.classifier = classifier
        self.content_store = content_store

    def crawl(self, project: Project, repo: GitRepository) -> CrawlResult:
        """Process every branch of an already cloned project.

        The branch checked out by the clone is processed first without a
        checkout. The remaining branches follow in set order; a branch that
        cannot be checked out is reported and skipped.

        Raises:
            ContentStoreError: If a blob cannot be stored (fatal for the run)
        """
        result = CrawlResult(snapshots=SnapshotSet())

        project.state = CrawlState.BRANCH_ITERATING
        pending: Set[str] = repo.get_branches()
        current: Optional[str] = repo.get_current_branch()

        if current is not None:
            pending.discard(current)
            self._crawl_branch(project, repo, current, result)

        while pending:
            branch = pending.pop()
            project.state = CrawlState.BRANCH_ITERATING
            try:
                repo.checkout(branch)
            except BranchCheckoutError as e:
                logger.error(f"{project}: {e}")
                project.branches_skipped.append(branch)
                result.branches_skipped += 1
                continue
            self._crawl_branch(project, repo, branch, result)

        project.state = CrawlState.DONE
        logger.info(
            f"{project}: {len(result.snapshots)} snapshots from "
            f"{result.branches_crawled} branches"
        )
        return result

    def _crawl_branch(
        self,
        project: Project,
        repo: GitRepository,
        branch: str,
        result: CrawlResult,
    ) -> None:
        logger.info(f"Analyzing branch {branch} of {project}")
        project.state = CrawlState.FILE_ITERATING

        for rel_path in repo.list_tracked_files():
            outcome = self.classifier.classify(rel_path)
            if outcome is Classification.DENY:
                project.has_denied_files = True
                result.files_denied += 1
            elif outcome is Classification.IGNORE:
                result.files_ignored += 1
            else:
                result.files_accepted += 1
                project.state = CrawlState.HISTORY_ITERATING
                self._crawl_history(repo, repo.get_file_history(rel_path), result)
                project.state = CrawlState.FILE_ITERATING

        project.branches_visited.append(branch)
        result.branches_crawled += 1

    def _crawl_history(
        self,
        repo: GitRepository,
        history: List[FileHistoryEntry],
        result: CrawlResult,
    ) -> None:
        snapshots = result.snapshots
        for entry in history:
            snapshot = FileSnapshot(
                commit=entry.commit, rel_path=entry.rel_path, time=entry.time
            )
            if snapshot in snapshots:
                result.duplicate_snapshots += 1
                continue

            data = repo.get_file_revision(entry)
            if data is None:
                # deleted at this commit: not recorded, so it stays eligible
                result.missing_revisions += 1
                continue

            snapshot.id = snapshots.next_id()
            snapshot.content_id = self.content_store.put(data)
            snapshots.add(snapshot)
