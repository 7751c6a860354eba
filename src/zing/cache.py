"""
On-disk record of commits created by zing.

Records are stored as a JSON object keyed by commit hash, each holding
the message, the hash, an ISO-8601 timestamp and a success flag.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class CacheError(Exception):
    """Raised when the commit cache cannot be read or written."""

    pass


@dataclass
class CommitRecord:
    message: str
    hash: str
    timestamp: str
    success: bool


class CommitCache:
    """JSON file of :class:`CommitRecord` entries."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.records: Dict[str, CommitRecord] = {}

    def load(self) -> None:
        """Read the records from disk. A missing file means no records.

        Raises
        ------
        CacheError
            If the file cannot be read or does not hold valid records.
        """
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self.records = {key: CommitRecord(**value) for key, value in data.items()}
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            raise CacheError(f"Could not load commit cache {self.path}: {exc}") from exc

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            data = {key: asdict(record) for key, record in self.records.items()}
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise CacheError(f"Could not save commit cache {self.path}: {exc}") from exc

    def add(self, message: str, commit_hash: str, success: bool = True,
            now: Optional[datetime] = None) -> CommitRecord:
        """Record a commit and write the cache to disk."""
        timestamp = (now or datetime.now(timezone.utc)).isoformat()
        record = CommitRecord(message=message, hash=commit_hash, timestamp=timestamp, success=success)
        self.records[commit_hash] = record
        self.save()
        logger.debug("Recorded commit %s in %s", commit_hash, self.path)
        return record
