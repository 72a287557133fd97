"""Crawl services: project lifecycle, seed intake and branch crawling."""

from .branch_crawler import BranchCrawler, CrawlResult
from .project_lifecycle import ProjectRegistry, WorkspaceManager
from .project_records import ProjectRecordWriter
from .seed_reader import SeedReader
from .snapshot_set import SnapshotSet

__all__ = [
    "BranchCrawler",
    "CrawlResult",
    "ProjectRecordWriter",
    "ProjectRegistry",
    "SeedReader",
    "SnapshotSet",
    "WorkspaceManager",
]
