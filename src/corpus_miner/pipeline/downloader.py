"""
Downloads git projects and mines the history of their files.

All outputs live under Config.output_path:

    temp/      clones of the projects currently being processed, always
               emptied when the downloader shuts down
    projects/  one crawl record per processed project (sharded by id)
    data/      unique file contents (sharded by content id) + hash index
    stats/     reserved for session statistics
    logs/      exception logs

For each project a worker clones the repository, crawls all of its branches
into the content store, deletes the clone and writes the crawl record.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..config import Config
from ..errors import FatalPipelineError, ProjectError
from ..filtering.pattern_list import PatternList
from ..git.repository import GitRepository
from ..models import CrawlState, FileSnapshot, Project
from ..services.branch_crawler import BranchCrawler
from ..services.project_lifecycle import ProjectRegistry, WorkspaceManager
from ..services.project_records import ProjectRecordWriter
from ..services.seed_reader import SeedReader
from ..storage.content_store import ContentStore, ShardCompactor
from ..storage.sharding import ShardLayout
from ..utils.exception_logger import ExceptionLogger
from .executor import TaskExecutor
from .stats import PipelineStats

logger = logging.getLogger(__name__)


class Downloader:
    """Shared context for one mining run, and the per-project task."""

    def __init__(
        self,
        config: Config,
        classifier: Optional[PatternList] = None,
        compactor: Optional[ShardCompactor] = None,
        registry: Optional[ProjectRegistry] = None,
        on_project_finished: Optional[Callable[[Project], None]] = None,
    ):
        """
        Args:
            config: Run configuration
            classifier: File classifier (default: built from config.language)
            compactor: Hook for completed content shard directories
            registry: Project id source (default: fresh registry starting at 0)
            on_project_finished: Called from the worker thread after each
                project, successful or not
        """
        self.config = config
        self.classifier = classifier or PatternList.for_language(
            config.language, config.filters
        )
        self.layout = ShardLayout(
            fanout=config.storage.shard_fanout, depth=config.storage.shard_depth
        )
        self.registry = registry or ProjectRegistry()
        self.workspaces = WorkspaceManager(config.temp_path)
        self.records = ProjectRecordWriter(config.projects_path, self.layout)
        self.stats = PipelineStats()
        self.on_project_finished = on_project_finished

        self._compactor = compactor
        self.content_store: Optional[ContentStore] = None
        self.crawler: Optional[BranchCrawler] = None
        self.executor: TaskExecutor[Project] = TaskExecutor(
            self.run, name="downloader"
        )

    def initialize(self) -> None:
        """Create the output layout and open the content store.

        Must be called before any worker starts.
        """
        for path in (
            self.config.output_path,
            self.config.temp_path,
            self.config.stats_path,
            self.config.projects_path,
            self.config.data_path,
        ):
            path.mkdir(parents=True, exist_ok=True)

        leftovers = self.workspaces.clear()
        if leftovers:
            logger.warning(
                f"Removed {leftovers} leftover workspaces from {self.config.temp_path}"
            )

        self.content_store = ContentStore(
            self.config.data_path,
            layout=self.layout,
            index_filename=self.config.storage.index_filename,
            compactor=self._compactor,
        )
        self.crawler = BranchCrawler(self.classifier, self.content_store)
        logger.info(
            f"Initialized output at {self.config.output_path} "
            f"({len(self.content_store)} known contents)"
        )

    def schedule(self, project: Project) -> None:
        if self.executor.schedule(project):
            self.stats.project_scheduled()

    def feed_projects_from(self, seed_path: Path) -> SeedReader:
        """Schedule every project listed in a seed file.

        Returns:
            The reader, whose errors attribute lists the skipped lines
        """
        reader = SeedReader(seed_path, self.registry)
        try:
            for project in reader:
                self.schedule(project)
        except Exception:
            logger.error(f"Seed intake from {seed_path} failed, stopping workers")
            self.abort()
            raise
        return reader

    def start(self, threads: Optional[int] = None) -> None:
        if self.crawler is None:
            raise RuntimeError("Downloader.initialize() must be called before start()")
        self.executor.spawn(threads or self.config.threads)
        self.executor.run()

    def wait(self) -> None:
        """Block until every scheduled project has been processed.

        Raises:
            FatalPipelineError: If the content store failed during the run
        """
        self.executor.wait()

    def abort(self) -> None:
        """Discard queued projects and wait for the running ones to finish.

        A fatal error raised by a running project is logged, not re-raised,
        so the caller's own exception keeps propagating.
        """
        self.executor.stop()
        if not self.executor.is_running:
            return
        try:
            self.executor.wait()
        except FatalPipelineError as e:
            logger.error(f"Fatal error while stopping workers: {e}")

    def shutdown(self) -> None:
        """Empty the temp root and close the content store."""
        self.workspaces.clear()
        if self.content_store is not None:
            self.content_store.close()

    def mine(self, seed_path: Path, threads: Optional[int] = None) -> PipelineStats:
        """Run a whole session over a seed file."""
        self.initialize()
        try:
            self.start(threads)
            self.feed_projects_from(seed_path)
            self.wait()
        except BaseException:
            self.abort()
            raise
        finally:
            self.shutdown()
        return self.stats

    def run(self, project: Project) -> None:
        """Process one project: clone, crawl all branches, clean up, record.

        Project-level failures are logged and recorded; only a
        FatalPipelineError propagates.
        """
        logger.info(f"Processing task {project}")
        snapshots: Iterable[FileSnapshot] = ()

        try:
            try:
                repo = self.download(project)
                result = self.crawler.crawl(project, repo)
                snapshots = result.snapshots
            finally:
                self.delete_project(project)
        except FatalPipelineError as e:
            # no record: the output tree itself may be failing
            self._mark_failed(project, e, write_record=False)
            raise
        except ProjectError as e:
            logger.error(str(e))
            self._mark_failed(project, e)
        except Exception as e:
            logger.exception(f"Unexpected failure while processing {project}: {e}")
            self._report(project, e)
            self._mark_failed(project, e)
        else:
            self.stats.record_crawl(result)
            self.records.write(project, snapshots)

        if self.on_project_finished is not None:
            self.on_project_finished(project)

    def download(self, project: Project) -> GitRepository:
        """Clone the project into its workspace.

        Raises:
            CloneError: If the repository cannot be cloned
        """
        project.state = CrawlState.CLONING
        path = self.workspaces.prepare(project)
        git_config = self.config.git
        repo = GitRepository.clone(
            project.git_url,
            path,
            clone_timeout=git_config.clone_timeout,
            command_timeout=git_config.command_timeout,
            follow_renames=git_config.follow_renames,
        )
        logger.info(f"{project} successfully cloned to local path {path}")
        return repo

    def delete_project(self, project: Project) -> None:
        """Just deletes the local path associated with the project."""
        self.workspaces.teardown(project)

    def _mark_failed(
        self, project: Project, error: Exception, write_record: bool = True
    ) -> None:
        project.state = CrawlState.FAILED
        project.error = str(error)
        self.stats.project_failed()
        if write_record:
            self.records.write(project)

    def _report(self, project: Project, error: Exception) -> None:
        exception_logger = ExceptionLogger.get_instance()
        if exception_logger is not None:
            exception_logger.log_exception(
                error, context={"project_id": project.id, "git_url": project.git_url}
            )
