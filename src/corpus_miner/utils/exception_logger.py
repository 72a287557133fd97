"""Centralized exception logger for the mining pipeline.

Worker threads run many projects unattended, so every exception that ends a
project task (or escapes a thread) is written with its full stack trace to a
timestamped JSON log under <output>/logs, next to the data it concerns.
"""

import json
import os
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any


class ExceptionLogger:
    """Centralized exception logging facility."""

    _instance: Optional["ExceptionLogger"] = None
    log_file_path: Optional[Path] = None

    def __init__(self, log_file_path: Path):
        self.log_file_path = log_file_path
        self._write_lock = threading.Lock()

    @classmethod
    def initialize(cls, logs_dir: Path) -> "ExceptionLogger":
        """Initialize the global exception logger (idempotent singleton).

        WARNING: If already initialized, returns the existing instance. Tests
        should reset cls._instance = None if they need fresh instances.

        Args:
            logs_dir: Directory that receives error_<timestamp>_<pid>.log

        Returns:
            Initialized ExceptionLogger instance
        """
        if cls._instance is not None:
            return cls._instance

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        pid = os.getpid()

        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file_path = logs_dir / f"error_{timestamp}_{pid}.log"

        instance = cls(log_file_path)
        cls._instance = instance
        log_file_path.touch()

        return instance

    @classmethod
    def get_instance(cls) -> Optional["ExceptionLogger"]:
        """Get the current exception logger instance, if initialized."""
        return cls._instance

    def log_exception(
        self,
        exception: BaseException,
        thread_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an exception with full context.

        Args:
            exception: The exception to log
            thread_name: Name of the thread where exception occurred (optional)
            context: Additional context data, e.g. project id and url (optional)
        """
        if not self.log_file_path:
            return

        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "thread": thread_name or threading.current_thread().name,
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            ),
            "context": context or {},
        }

        with self._write_lock:
            with open(self.log_file_path, "a") as f:
                f.write(json.dumps(log_entry, indent=2, default=str))
                f.write("\n---\n")

    def install_thread_exception_hook(self) -> None:
        """Route uncaught thread exceptions to the log file."""

        def global_thread_exception_handler(args):
            self.log_exception(
                exception=args.exc_value,
                thread_name=args.thread.name if args.thread else None,
                context={"exc_type": args.exc_type.__name__},
            )

        threading.excepthook = global_thread_exception_handler
