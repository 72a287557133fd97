"""Seed list intake.

A seed file holds one project per line, either just a clone URL or a URL
and an explicit id from a previous run:

    https://github.com/expressjs/express.git
    https://github.com/lodash/lodash.git,1042

Every physical line is decoded and parsed on its own. Malformed lines are
reported and skipped; they never stop intake.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional

from ..errors import SeedFormatError
from ..models import Project
from .project_lifecycle import ProjectRegistry

logger = logging.getLogger(__name__)


def _has_invalid_url_char(url: str) -> bool:
    # whitespace, control characters and quotes never appear in a clone URL
    return any(ch.isspace() or not ch.isprintable() or ch == '"' for ch in url)


class SeedReader:
    """Turns a seed file into projects registered with a ProjectRegistry."""

    def __init__(self, seed_path: Path, registry: ProjectRegistry):
        self.seed_path = Path(seed_path)
        self.registry = registry
        self.errors: List[SeedFormatError] = []

    def __iter__(self) -> Iterator[Project]:
        filename = str(self.seed_path)
        with open(self.seed_path, "rb") as f:
            for line_no, raw_line in enumerate(f, 1):
                try:
                    project = self._parse_line(filename, line_no, raw_line)
                except SeedFormatError as e:
                    self.errors.append(e)
                    logger.error(str(e))
                    continue
                if project is not None:
                    yield project

    def read_all(self) -> List[Project]:
        return list(self)

    def _parse_line(
        self, filename: str, line_no: int, raw_line: bytes
    ) -> Optional[Project]:
        """Parse one line; returns None for a blank line."""
        try:
            line = raw_line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SeedFormatError(
                filename, line_no, f"not valid UTF-8 at byte {e.start}"
            ) from e

        line = line.rstrip("\r\n")
        if line_no == 1:
            line = line.lstrip("\ufeff")
        if not line.strip():
            return None

        fields = [field.strip() for field in line.split(",")]

        if len(fields) == 1:
            url, raw_id = fields[0], None
        elif len(fields) == 2:
            url, raw_id = fields
        else:
            raise SeedFormatError(
                filename, line_no, f"expected 1 or 2 fields, got {len(fields)}"
            )

        if not url:
            raise SeedFormatError(filename, line_no, "empty url")
        if _has_invalid_url_char(url):
            raise SeedFormatError(
                filename, line_no, f"invalid character in url {url!r}"
            )

        if raw_id is None:
            return self.registry.create_auto(url)

        # isdigit() also rejects signs, so negative ids are malformed too
        if not (raw_id.isascii() and raw_id.isdigit()):
            raise SeedFormatError(filename, line_no, f"invalid id '{raw_id}'")
        return self.registry.create_with_id(url, int(raw_id, 10))
