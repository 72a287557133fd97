"""Session statistics aggregated across worker threads."""

import threading
from dataclasses import dataclass, field, fields
from typing import Dict

from ..services.branch_crawler import CrawlResult


@dataclass
class PipelineStats:
    """Running totals for one mining session."""

    projects_scheduled: int = 0
    projects_completed: int = 0
    projects_failed: int = 0
    branches_crawled: int = 0
    branches_skipped: int = 0
    files_accepted: int = 0
    files_denied: int = 0
    files_ignored: int = 0
    snapshots_stored: int = 0
    duplicate_snapshots: int = 0
    missing_revisions: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def project_scheduled(self) -> None:
        with self._lock:
            self.projects_scheduled += 1

    def project_failed(self) -> None:
        with self._lock:
            self.projects_failed += 1

    def record_crawl(self, result: CrawlResult) -> None:
        with self._lock:
            self.projects_completed += 1
            self.branches_crawled += result.branches_crawled
            self.branches_skipped += result.branches_skipped
            self.files_accepted += result.files_accepted
            self.files_denied += result.files_denied
            self.files_ignored += result.files_ignored
            self.snapshots_stored += result.snapshots_stored
            self.duplicate_snapshots += result.duplicate_snapshots
            self.missing_revisions += result.missing_revisions

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return {
                f.name: getattr(self, f.name)
                for f in fields(self)
                if not f.name.startswith("_")
            }
