"""
JSON file store used when the database cannot be reached.

One <collection>.json file per collection, each holding a list of records
keyed by their 'id'. Writes go through a temp file and os.replace so a crash
never leaves a half-written file behind.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_write_lock = threading.Lock()


class FallbackStore:
    """File-backed record store for demo continuity."""

    def __init__(self, folder: str):
        self.folder = folder

    def _path(self, collection: str) -> str:
        return os.path.join(self.folder, f"{collection}.json")

    def _load(self, collection: str) -> List[Dict[str, Any]]:
        path = self._path(collection)
        if not os.path.exists(path):
            return []
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Fallback store file {path} unreadable, treating as empty: {e}")
            return []
        return data if isinstance(data, list) else []

    def _write(self, collection: str, records: List[Dict[str, Any]]):
        os.makedirs(self.folder, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.folder, prefix=f".{collection}.", suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(records, f, indent=2, default=str)
            os.replace(tmp_path, self._path(collection))
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return self._load(collection)

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self._load(collection):
            if record.get('id') == record_id:
                return record
        return None

    def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace a record by id."""
        if not record.get('id'):
            raise ValueError('Fallback records need an id')
        with _write_lock:
            records = [r for r in self._load(collection) if r.get('id') != record['id']]
            stored = dict(record)
            stored.setdefault('created_at', datetime.utcnow().isoformat())
            stored['updated_at'] = datetime.utcnow().isoformat()
            records.append(stored)
            self._write(collection, records)
        logger.info(f"Stored {collection}/{record['id']} in fallback store")
        return stored

    def delete(self, collection: str, record_id: str) -> bool:
        with _write_lock:
            records = self._load(collection)
            remaining = [r for r in records if r.get('id') != record_id]
            if len(remaining) == len(records):
                return False
            self._write(collection, remaining)
        return True
