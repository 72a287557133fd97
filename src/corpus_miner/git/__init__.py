"""Git process layer: clone, branches, file history and blob retrieval."""

from .repository import FileHistoryEntry, GitRepository

__all__ = ["FileHistoryEntry", "GitRepository"]
