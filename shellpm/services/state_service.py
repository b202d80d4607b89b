"""
Package state store for shellpm.

Persists one PackageRecord per installed package in
``<root>/state.json``. The store is the only writer of records; the
package manager proposes changes, the hook executor never touches it.

Concurrent shellpm processes against the same root are not guarded
against: the last writer wins.
"""

import logging
from pathlib import Path
from typing import List, Optional

from ..domain.record import PackageRecord, record_key
from ..infra.file_store import FileStore

logger = logging.getLogger(__name__)

STATE_FILENAME = 'state.json'


class PackageStateStore:
    """
    Durable installed-package records.

    Example:
        store = PackageStateStore(Path("~/.shellpm"))
        store.put(PackageRecord.create("core", "git", "abc123"))
        for record in store.list_enabled():
            print(record.key)
    """

    def __init__(self, root: Path, store: Optional[FileStore] = None):
        self.root = Path(root)
        self.store = store or FileStore(self.root / STATE_FILENAME)

    def get(self, repository: str, name: str) -> Optional[PackageRecord]:
        data = self.store.get(record_key(repository, name))
        return PackageRecord.from_dict(data) if data else None

    def put(self, record: PackageRecord) -> None:
        logger.debug(f"Recording {record.key} at {record.commit[:12]}")
        self.store.set(record.key, record.to_dict())

    def delete(self, repository: str, name: str) -> bool:
        deleted = self.store.delete(record_key(repository, name))
        if deleted:
            logger.debug(f"Deleted record {record_key(repository, name)}")
        return deleted

    def list_all(self) -> List[PackageRecord]:
        """Every record, ordered by ``repo/name``."""
        return [
            PackageRecord.from_dict(data)
            for _, data in sorted(self.store.items())
        ]

    def list_enabled(self) -> List[PackageRecord]:
        """Records that get sourced into the interactive shell."""
        return [record for record in self.list_all() if record.enabled]

    def for_repository(self, repository: str) -> List[PackageRecord]:
        return [record for record in self.list_all() if record.repository == repository]

    def mark_orphaned(self, repository: str) -> List[PackageRecord]:
        """
        Flag every record of a repository as orphaned.

        Returns:
            The records as they are now stored
        """
        orphaned = [record.as_orphaned() for record in self.for_repository(repository)]
        if orphaned:
            self.store.update({record.key: record.to_dict() for record in orphaned})
            logger.warning(
                f"Marked {len(orphaned)} package(s) from '{repository}' as orphaned"
            )
        return orphaned
