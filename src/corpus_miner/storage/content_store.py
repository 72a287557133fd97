"""Global content-addressed blob store.

Every distinct byte sequence observed by any worker in any project is
written exactly once, under a dense integer content id:

    data/
      content_index.bin        digest -> id log (see hash_index)
      0/0/0.raw ... 0/0/999.raw
      0/1/1000.raw ...

The hash lookup, id allocation, blob write and index append form a single
critical section. An id becomes visible to other workers only after its
bytes are on disk, so no caller can be handed an id without a backing file.
"""

import hashlib
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

from ..errors import ContentStoreError
from .hash_index import HashIndex
from .id_allocator import IdAllocator
from .sharding import ShardLayout

logger = logging.getLogger(__name__)


class ShardCompactor(Protocol):
    """Hook invoked when a shard directory has received its last blob."""

    def shard_completed(self, shard_dir: Path) -> None: ...


class NullCompactor:
    """Default compactor: leaves completed shards as plain files."""

    def shard_completed(self, shard_dir: Path) -> None:
        logger.info(f"Shard directory complete: {shard_dir}")


class ContentStore:
    """Sharded, append-only, hash-deduplicated blob store."""

    BLOB_SUFFIX = ".raw"

    def __init__(
        self,
        root: Path,
        layout: Optional[ShardLayout] = None,
        index_filename: str = "content_index.bin",
        compactor: Optional[ShardCompactor] = None,
    ):
        """Open (or create) the store rooted at root.

        Args:
            root: Data directory holding blobs and the hash index
            layout: Shard layout for blob paths (default fanout 1000, depth 2)
            index_filename: Name of the persistent hash index file
            compactor: Hook for completed shard directories
        """
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.layout = layout or ShardLayout()
        self.compactor: ShardCompactor = compactor or NullCompactor()

        self._lock = threading.Lock()
        self._index = HashIndex(self.root / index_filename)
        self._hashes: Dict[bytes, int] = self._index.load()
        self._allocator = IdAllocator()
        if self._hashes:
            self._allocator.raise_floor(max(self._hashes.values()) + 1)

        self.blobs_written = 0
        self.duplicate_hits = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._hashes)

    def __enter__(self) -> "ContentStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def next_content_id(self) -> int:
        return self._allocator.next_id

    def blob_path(self, content_id: int) -> Path:
        """Location of the blob for content_id (whether or not it exists)."""
        return (
            self.layout.directory(self.root, content_id)
            / f"{content_id}{self.BLOB_SUFFIX}"
        )

    def put(self, data: bytes) -> int:
        """Register data and return its content id.

        Identical bytes always map to the same id and are written to disk only
        the first time they are seen.

        Args:
            data: Raw blob contents

        Returns:
            The content id, either freshly allocated or previously assigned

        Raises:
            ContentStoreError: If the blob or its index record cannot be written.
                The store must not be used after this, since continuing could
                hand out ids with no backing bytes.
        """
        digest = hashlib.sha256(data).digest()
        completed_shard: Optional[Path] = None

        with self._lock:
            existing = self._hashes.get(digest)
            if existing is not None:
                self.duplicate_hits += 1
                return existing

            content_id = self._allocator.allocate()
            target = self.blob_path(content_id)
            try:
                self._write_blob(target, data)
                self._index.append(digest, content_id)
            except OSError as e:
                raise ContentStoreError(
                    f"Failed to store content id {content_id} at {target}: {e}"
                ) from e

            self._hashes[digest] = content_id
            self.blobs_written += 1

            if self.layout.closes_directory(content_id):
                completed_shard = target.parent

        if completed_shard is not None:
            self.compactor.shard_completed(completed_shard)

        return content_id

    def contains(self, data: bytes) -> bool:
        digest = hashlib.sha256(data).digest()
        with self._lock:
            return digest in self._hashes

    def close(self) -> None:
        self._index.close()

    def _write_blob(self, target: Path, data: bytes) -> None:
        """Write-to-temp-then-rename so a blob file is never seen half written."""
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = target.with_suffix(".tmp")
        with open(tmp_file, "wb") as f:
            f.write(data)
        tmp_file.replace(target)
