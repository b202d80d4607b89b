"""
File store infrastructure for shellpm.

Provides JSON file persistence with:
- Atomic writes (write to temp, then rename)
- Pretty formatting so state files stay human-readable
- An in-process lock around read-modify-write cycles
- Automatic parent directory creation

There is no cross-process locking: two shellpm processes writing the
same store concurrently can lose updates.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class FileStore:
    """
    JSON object persisted to a single file.

    Example:
        store = FileStore(Path("~/.shellpm/state.json"))
        store.set("core/git", {"commit": "abc123", ...})
        data = store.get("core/git")
    """

    def __init__(self, path: Path, auto_create: bool = True):
        """
        Initialize FileStore.

        Args:
            path: Path to JSON file
            auto_create: Create file and parent directories if they don't exist
        """
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()
        self._cache: Optional[Dict[str, Any]] = None

        if auto_create:
            self._ensure_exists()

    def _ensure_exists(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write_atomic({})

    def _write_atomic(self, data: Dict[str, Any]) -> None:
        """Write data atomically using temp file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp"
        )

        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2, sort_keys=True, ensure_ascii=False)
                f.write('\n')
            os.replace(temp_path, self.path)
        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def read(self) -> Dict[str, Any]:
        """
        Read entire store.

        Returns:
            Copy of all stored data

        Raises:
            ValueError: if the file exists but does not hold a JSON object
        """
        with self._lock:
            if self._cache is None:
                self._cache = self._load()
            return dict(self._cache)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt state file {self.path}: {e}")
            raise ValueError(f"{self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def write(self, data: Dict[str, Any]) -> None:
        """Replace the entire store."""
        with self._lock:
            self._write_atomic(data)
            self._cache = dict(data)

    def get(self, key: str, default: Any = None) -> Any:
        return self.read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self.read()
            data[key] = value
            self.write(data)

    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if key was deleted, False if not found
        """
        with self._lock:
            data = self.read()
            if key not in data:
                return False
            del data[key]
            self.write(data)
            return True

    def update(self, updates: Dict[str, Any]) -> None:
        """Set several keys in one write."""
        with self._lock:
            data = self.read()
            data.update(updates)
            self.write(data)

    def keys(self) -> list:
        return list(self.read().keys())

    def items(self):
        return self.read().items()

    def invalidate_cache(self) -> None:
        """Force the next read to go to disk."""
        with self._lock:
            self._cache = None

    def __len__(self) -> int:
        return len(self.read())

    def __contains__(self, key: str) -> bool:
        return key in self.read()
