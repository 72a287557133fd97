"""Per-project set of already processed file snapshots."""

from typing import Dict, Iterator, Tuple

from ..models import FileSnapshot


class SnapshotSet:
    """(commit, path) pairs a project has fully processed in this run.

    Branches that share history revisit the same (commit, path) pairs; a hit
    here means the blob was already fetched and stored. Owned by a single
    worker, so no locking.
    """

    def __init__(self) -> None:
        self._snapshots: Dict[Tuple[str, str], FileSnapshot] = {}

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, snapshot: FileSnapshot) -> bool:
        return snapshot.identity in self._snapshots

    def __iter__(self) -> Iterator[FileSnapshot]:
        return iter(self._snapshots.values())

    def next_id(self) -> int:
        """Project-local id for the next snapshot to be added."""
        return len(self._snapshots)

    def add(self, snapshot: FileSnapshot) -> None:
        """Record a snapshot whose content is already in the content store."""
        if snapshot.content_id < 0:
            raise ValueError(
                f"Snapshot {snapshot.rel_path}@{snapshot.commit} has no content id"
            )
        if snapshot.identity in self._snapshots:
            raise ValueError(
                f"Snapshot {snapshot.rel_path}@{snapshot.commit} already recorded"
            )
        self._snapshots[snapshot.identity] = snapshot
