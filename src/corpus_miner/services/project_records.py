"""Per-project crawl records.

Each finished project is written to projects/<shard>/<id>.json, using the
same sharded layout as the content blobs so that millions of projects never
end up in one directory:

    {
      "id": 17,
      "git_url": "https://github.com/...",
      "status": "done",
      "has_denied_files": false,
      "branches_visited": ["main", "dev"],
      "branches_skipped": [],
      "error": null,
      "snapshots": [
        {"id": 0, "commit": "9fceb02...", "path": "src/a.js",
         "content_id": 3, "time": 1500000000}
      ]
    }
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..models import CrawlState, FileSnapshot, Project
from ..storage.sharding import ShardLayout

logger = logging.getLogger(__name__)


class ProjectRecordWriter:
    """Writes one JSON record per processed project."""

    def __init__(self, projects_root: Path, layout: Optional[ShardLayout] = None):
        self.projects_root = Path(projects_root)
        self.layout = layout or ShardLayout()

    def record_path(self, project_id: int) -> Path:
        shard_dir = self.layout.directory(self.projects_root, project_id)
        return shard_dir / f"{project_id}.json"

    def write(
        self, project: Project, snapshots: Iterable[FileSnapshot] = ()
    ) -> Path:
        """Write the record for project and return its path."""
        status = "done" if project.state == CrawlState.DONE else "failed"
        record: Dict[str, Any] = {
            "id": project.id,
            "git_url": project.git_url,
            "status": status,
            "has_denied_files": project.has_denied_files,
            "branches_visited": list(project.branches_visited),
            "branches_skipped": list(project.branches_skipped),
            "error": project.error,
            "snapshots": [s.to_dict() for s in sorted(snapshots, key=lambda s: s.id)],
        }

        target = self.record_path(project.id)
        target.parent.mkdir(parents=True, exist_ok=True)
        self._atomic_write_json(target, record)
        logger.debug(f"Wrote crawl record {target}")
        return target

    def _atomic_write_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write-to-temp-then-rename so readers never see a partial record."""
        tmp_file = file_path.with_suffix(".tmp")

        with open(tmp_file, "w") as f:
            json.dump(data, f, indent=2)

        tmp_file.replace(file_path)
