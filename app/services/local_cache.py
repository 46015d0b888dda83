"""JSON-file mirror of the last known-good entity lists."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from app.config.settings import get_settings

logger = logging.getLogger(__name__)

DISHES_KEY = "dishes"
INGREDIENTS_KEY = "ingredients"
ORDERS_KEY = "orders"
SNAPSHOT_KEY = "restaurant-store"


class LocalCache:
    """Key-value store where each key holds one JSON document on disk.

    Entries are always read and written as a whole; writes go through a
    temporary file and ``os.replace`` so a reader never sees a partial file.
    """

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        self.directory = Path(directory if directory is not None else get_settings().cache_dir)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache entry %s: %s", path, exc)
            return None

    def _write(self, key: str, document: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, ensure_ascii=False)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def read_list(self, key: str) -> List[Dict[str, Any]]:
        """Return the cached list for ``key``; anything unusable reads as empty."""

        document = self._read(key)
        if not isinstance(document, list):
            if document is not None:
                logger.warning("Cache entry %s is not a list, ignoring it.", key)
            return []
        return [row for row in document if isinstance(row, dict)]

    def write_list(self, key: str, items: List[Dict[str, Any]]) -> None:
        self._write(key, list(items))

    def read_snapshot(self) -> Optional[Dict[str, Any]]:
        document = self._read(SNAPSHOT_KEY)
        return document if isinstance(document, dict) else None

    def write_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self._write(SNAPSHOT_KEY, snapshot)

    def clear(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return


__all__ = [
    "DISHES_KEY",
    "INGREDIENTS_KEY",
    "LocalCache",
    "ORDERS_KEY",
    "SNAPSHOT_KEY",
]
