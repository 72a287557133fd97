"""Tests for SnapshotSet."""

import pytest

from corpus_miner.models import FileSnapshot
from corpus_miner.services.snapshot_set import SnapshotSet


class TestSnapshotSet:
    def test_add_and_contains(self):
        snapshots = SnapshotSet()
        snapshot = FileSnapshot(commit="c1", rel_path="a.js", id=0, content_id=0)

        snapshots.add(snapshot)

        assert FileSnapshot(commit="c1", rel_path="a.js") in snapshots
        assert FileSnapshot(commit="c2", rel_path="a.js") not in snapshots
        assert len(snapshots) == 1

    def test_next_id_is_dense(self):
        snapshots = SnapshotSet()
        for i, commit in enumerate(["c1", "c2", "c3"]):
            assert snapshots.next_id() == i
            snapshots.add(
                FileSnapshot(commit=commit, rel_path="a.js", id=i, content_id=0)
            )

        assert [s.id for s in snapshots] == [0, 1, 2]

    def test_snapshot_without_content_id_rejected(self):
        """Only snapshots whose blob is already stored may be recorded."""
        with pytest.raises(ValueError, match="no content id"):
            SnapshotSet().add(FileSnapshot(commit="c1", rel_path="a.js"))

    def test_duplicate_rejected(self):
        snapshots = SnapshotSet()
        snapshots.add(FileSnapshot(commit="c1", rel_path="a.js", content_id=0))

        with pytest.raises(ValueError, match="already recorded"):
            snapshots.add(FileSnapshot(commit="c1", rel_path="a.js", content_id=1))
