"""Persistent content hash index.

Append-only binary log of (content digest, content id) pairs, replayed on
startup so that deduplication holds across runs, not just within one.

Binary format:
For each entry (fixed 40 bytes):
  [digest: 32 bytes (SHA-256)]
  [content_id: 8 bytes (uint64, little-endian)]
"""

import logging
import struct
import threading
from pathlib import Path
from typing import BinaryIO, Dict, Optional

logger = logging.getLogger(__name__)


class HashIndex:
    """Append-only digest -> content id log stored next to the blobs."""

    DIGEST_SIZE = 32
    RECORD = struct.Struct("<32sQ")

    def __init__(self, index_file: Path):
        self.index_file = index_file
        self._lock = threading.Lock()
        self._handle: Optional[BinaryIO] = None

    def load(self) -> Dict[bytes, int]:
        """Read every complete record from disk.

        A trailing partial record (crash in the middle of an append) is cut
        off. Its blob, if written, is simply overwritten when the id is handed
        out again.

        Returns:
            Dictionary mapping digests to content ids
        """
        if not self.index_file.exists():
            return {}

        data = self.index_file.read_bytes()
        usable = len(data) - len(data) % self.RECORD.size

        if usable != len(data):
            logger.warning(
                f"Truncating {len(data) - usable} trailing bytes of partial record "
                f"in {self.index_file}"
            )
            with open(self.index_file, "r+b") as f:
                f.truncate(usable)

        entries: Dict[bytes, int] = {}
        for digest, content_id in self.RECORD.iter_unpack(data[:usable]):
            entries[digest] = content_id

        logger.info(f"Loaded {len(entries)} content hashes from {self.index_file}")
        return entries

    def append(self, digest: bytes, content_id: int) -> None:
        """Durably append one record.

        Args:
            digest: Raw SHA-256 digest of the blob
            content_id: Id assigned to the blob
        """
        if len(digest) != self.DIGEST_SIZE:
            raise ValueError(
                f"Expected {self.DIGEST_SIZE}-byte digest, got {len(digest)} bytes"
            )

        with self._lock:
            if self._handle is None:
                self.index_file.parent.mkdir(parents=True, exist_ok=True)
                self._handle = open(self.index_file, "ab")
            self._handle.write(self.RECORD.pack(digest, content_id))
            self._handle.flush()

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None
