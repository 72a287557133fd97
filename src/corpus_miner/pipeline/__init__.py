"""Pipeline driver: worker pool, downloader and session statistics."""

from .downloader import Downloader
from .executor import TaskExecutor
from .stats import PipelineStats

__all__ = ["Downloader", "PipelineStats", "TaskExecutor"]
