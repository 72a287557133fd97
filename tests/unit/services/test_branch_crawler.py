"""Tests for BranchCrawler with a mocked git repository."""

import logging
from unittest.mock import MagicMock

import pytest

from corpus_miner.errors import BranchCheckoutError, ContentStoreError
from corpus_miner.filtering.pattern_list import PatternList
from corpus_miner.git.repository import FileHistoryEntry
from corpus_miner.models import CrawlState, Project
from corpus_miner.services.branch_crawler import BranchCrawler
from corpus_miner.storage.content_store import ContentStore


def _mock_repo(branches, current, files, history, blobs, failing=()):
    """Build a GitRepository stand-in.

    Args:
        branches: Branch names known to the clone
        current: Branch checked out after clone (None for empty repo)
        files: Tracked files, same on every branch
        history: Mapping path -> list of (commit, path, time)
        blobs: Mapping (commit, path) -> bytes; missing pairs mean deleted
        failing: Branches whose checkout fails
    """
    repo = MagicMock()
    repo.get_branches.return_value = set(branches)
    repo.get_current_branch.return_value = current
    repo.list_tracked_files.return_value = list(files)
    repo.get_file_history.side_effect = lambda path: [
        FileHistoryEntry(commit=c, rel_path=p, time=t) for c, p, t in history[path]
    ]
    repo.get_file_revision.side_effect = lambda entry: blobs.get(
        (entry.commit, entry.rel_path)
    )

    def checkout(branch):
        if branch in failing:
            raise BranchCheckoutError(branch, "pathspec did not match")

    repo.checkout.side_effect = checkout
    return repo


@pytest.fixture
def store(tmp_path):
    with ContentStore(tmp_path / "data") as content_store:
        yield content_store


@pytest.fixture
def crawler(store):
    return BranchCrawler(PatternList.for_language("javascript"), store)


class TestBranchCrawlerBranches:
    def test_current_branch_first_and_failed_checkout_skipped(
        self, crawler, caplog
    ):
        """Branches {A, B, C} with B current and A unreachable visit B then C."""
        repo = _mock_repo(
            branches=["A", "B", "C"],
            current="B",
            files=["a.js"],
            history={"a.js": [("c1", "a.js", 1)]},
            blobs={("c1", "a.js"): b"a"},
            failing={"A"},
        )
        project = Project(id=0, git_url="https://x/p.git")

        with caplog.at_level(logging.ERROR):
            result = crawler.crawl(project, repo)

        assert project.branches_visited == ["B", "C"]
        assert project.branches_skipped == ["A"]
        assert result.branches_crawled == 2
        assert result.branches_skipped == 1
        assert project.state is CrawlState.DONE
        checked_out = [c.args[0] for c in repo.checkout.call_args_list]
        assert "B" not in checked_out
        assert "Unable to checkout branch A" in caplog.text

    def test_empty_repository_yields_nothing(self, crawler):
        repo = _mock_repo(
            branches=[], current=None, files=[], history={}, blobs={}
        )
        project = Project(id=0, git_url="https://x/empty.git")

        result = crawler.crawl(project, repo)

        assert len(result.snapshots) == 0
        assert project.branches_visited == []
        assert project.state is CrawlState.DONE


class TestBranchCrawlerFiles:
    def test_shared_history_fetched_once(self, crawler, store):
        """Two branches with the same history fetch each pair only once."""
        repo = _mock_repo(
            branches=["main", "dev"],
            current="main",
            files=["a.js"],
            history={"a.js": [("c2", "a.js", 2), ("c1", "a.js", 1)]},
            blobs={("c2", "a.js"): b"v2", ("c1", "a.js"): b"v1"},
        )
        project = Project(id=0, git_url="u")

        result = crawler.crawl(project, repo)

        assert len(result.snapshots) == 2
        assert result.duplicate_snapshots == 2
        assert repo.get_file_revision.call_count == 2
        assert store.blobs_written == 2

    def test_identical_bytes_across_commits_share_content_id(self, crawler, store):
        repo = _mock_repo(
            branches=["main"],
            current="main",
            files=["a.js", "b.js"],
            history={
                "a.js": [("c1", "a.js", 1)],
                "b.js": [("c1", "b.js", 1)],
            },
            blobs={("c1", "a.js"): b"same", ("c1", "b.js"): b"same"},
        )

        result = crawler.crawl(Project(id=0, git_url="u"), repo)

        content_ids = {s.content_id for s in result.snapshots}
        assert content_ids == {0}
        assert store.blobs_written == 1

    def test_deleting_commit_is_not_recorded(self, crawler):
        """A history entry whose blob is missing is counted but not stored."""
        repo = _mock_repo(
            branches=["main"],
            current="main",
            files=["a.js"],
            history={"a.js": [("c3", "a.js", 3), ("c1", "a.js", 1)]},
            blobs={("c1", "a.js"): b"v1"},
        )

        result = crawler.crawl(Project(id=0, git_url="u"), repo)

        assert [s.commit for s in result.snapshots] == ["c1"]
        assert result.missing_revisions == 1

    def test_denied_files_flag_project_and_are_not_mined(self, crawler):
        repo = _mock_repo(
            branches=["main"],
            current="main",
            files=["src/a.js", "node_modules/lib/index.js", "README.md"],
            history={"src/a.js": [("c1", "src/a.js", 1)]},
            blobs={("c1", "src/a.js"): b"a"},
        )
        project = Project(id=0, git_url="u")

        result = crawler.crawl(project, repo)

        assert project.has_denied_files is True
        assert result.files_accepted == 1
        assert result.files_denied == 1
        assert result.files_ignored == 1
        repo.get_file_history.assert_called_once_with("src/a.js")

    def test_snapshot_ids_are_dense_and_keep_history_path(self, crawler):
        repo = _mock_repo(
            branches=["main"],
            current="main",
            files=["new.js"],
            history={"new.js": [("c2", "new.js", 2), ("c1", "old.js", 1)]},
            blobs={("c2", "new.js"): b"x", ("c1", "old.js"): b"y"},
        )

        result = crawler.crawl(Project(id=0, git_url="u"), repo)

        by_id = sorted(result.snapshots, key=lambda s: s.id)
        assert [(s.id, s.rel_path) for s in by_id] == [(0, "new.js"), (1, "old.js")]

    def test_store_failure_propagates(self, crawler, store, monkeypatch):
        repo = _mock_repo(
            branches=["main"],
            current="main",
            files=["a.js"],
            history={"a.js": [("c1", "a.js", 1)]},
            blobs={("c1", "a.js"): b"a"},
        )
        monkeypatch.setattr(
            store, "put", MagicMock(side_effect=ContentStoreError("disk gone"))
        )

        with pytest.raises(ContentStoreError):
            crawler.crawl(Project(id=0, git_url="u"), repo)
