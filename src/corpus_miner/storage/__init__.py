"""Filesystem storage for mined content."""

from .content_store import ContentStore, NullCompactor, ShardCompactor
from .id_allocator import IdAllocator
from .sharding import ShardLayout

__all__ = [
    "ContentStore",
    "IdAllocator",
    "NullCompactor",
    "ShardCompactor",
    "ShardLayout",
]
