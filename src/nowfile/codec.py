"""
Task File Codec

Reads and writes the whole task collection as line-delimited JSON,
one record per line, in collection order.
"""

import os
import json
import tempfile
import logging
from pathlib import Path
from typing import List, Dict, Any, Optional

RECORD_KEYS = ('id', 'description', 'created_at', 'completed_at', 'due_at', 'done')


class TaskFile:
    """Whole-collection load/save of task records"""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the task file

        Args:
            config: 'storage' section of the tracker configuration
        """
        self.config = config
        self.logger = logging.getLogger("TaskTracker.Storage")
        self.path = Path(config['path']).expanduser()

    def load(self) -> List[Dict[str, Any]]:
        """
        Read every whole record from the task file

        Returns:
            List of record dicts in storage order. A missing file yields an
            empty list. Reading stops at the first malformed record.
        """
        if not self.path.exists():
            self.logger.debug(f"Task file not found: {self.path}")
            return []

        try:
            with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
                lines = f.read().split('\n')
        except OSError as e:
            self.logger.warning(f"Could not read task file {self.path}: {e}")
            return []

        records = []
        for line_number, line in enumerate(lines, 1):
            if not line.strip():
                continue
            record = self._decode(line)
            if record is None:
                self.logger.debug(
                    f"Ignoring task file from line {line_number} on: malformed record"
                )
                break
            records.append(record)

        self.logger.debug(f"Loaded {len(records)} records from {self.path}")
        return records

    def save(self, records: List[Dict[str, Any]]) -> None:
        """
        Overwrite the task file with the given records

        The records are written to a temporary file that replaces the task
        file only once complete, so a failed save leaves the old file intact.

        Args:
            records: Record dicts in the order they should be stored

        Raises:
            OSError: If the file cannot be written
            UnicodeEncodeError: If a record holds text that is not valid UTF-8
        """
        try:
            content = ''.join(
                json.dumps(record, ensure_ascii=False) + '\n' for record in records
            ).encode('utf-8')
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write(content)
        except (OSError, UnicodeEncodeError) as e:
            self.logger.error(f"Failed to save tasks to {self.path}: {e}")
            raise

        self.logger.debug(f"Saved {len(records)} records to {self.path}")

    def _atomic_write(self, content: bytes) -> None:
        """Write content via tempfile + rename"""
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
            os.replace(tmp, self.path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _decode(self, line: str) -> Optional[Dict[str, Any]]:
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            return None
        if not isinstance(record, dict) or any(key not in record for key in RECORD_KEYS):
            return None
        return record
