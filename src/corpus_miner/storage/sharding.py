"""Sharded directory layout for id-keyed files.

Ids are spread over nested directories so that no shard directory below the
outermost level holds more than ``fanout`` entries. With fanout=1000 and
depth=2, id 1234567 lands in ``1/234/`` and ids 1234000..1234999 share that
leaf directory.
"""

from pathlib import Path
from typing import List


class ShardLayout:
    """Maps dense integer ids onto a nested directory tree."""

    def __init__(self, fanout: int = 1000, depth: int = 2):
        if fanout < 2:
            raise ValueError(f"Shard fanout must be at least 2, got {fanout}")
        if depth < 1:
            raise ValueError(f"Shard depth must be at least 1, got {depth}")
        self.fanout = fanout
        self.depth = depth

    def segments(self, item_id: int) -> List[str]:
        """Directory names, outermost first, for the given id."""
        if item_id < 0:
            raise ValueError(f"Cannot shard negative id {item_id}")
        # outermost level is unbounded, every inner level wraps at fanout
        parts = [str(item_id // self.fanout**self.depth)]
        for level in range(self.depth - 1, 0, -1):
            parts.append(str((item_id // self.fanout**level) % self.fanout))
        return parts

    def directory(self, root: Path, item_id: int) -> Path:
        """Shard directory under root that holds the given id."""
        path = root
        for segment in self.segments(item_id):
            path = path / segment
        return path

    def closes_directory(self, item_id: int) -> bool:
        """True if item_id is the last id its shard directory will ever hold."""
        return (item_id + 1) % self.fanout == 0
