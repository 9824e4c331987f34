"""
File-backed cursor persistence so a restarted crawler resumes after its last page.

The file holds {"<crawler_id>": "<last_timestamp>", ...}; writes go through a
temp file and os.replace so a crash never leaves a half-written file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from hodlertrack_crawler.crawler_logging import get_logger

logger = get_logger(__name__)


class CursorStore:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("cursor_store_corrupt", path=str(self._path), error=str(e))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def load(self, crawler_id: str) -> str:
        """Return the stored cursor for crawler_id, or '' when none is stored."""
        return self._read_all().get(crawler_id, "")

    def save(self, crawler_id: str, cursor: str) -> None:
        data = self._read_all()
        data[crawler_id] = cursor
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".cursor-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
