"""
Installed-state records for shellpm.

A PackageRecord is created by a successful install, has its commit
updated by a successful update and is deleted by a successful remove.
Only the state store writes records.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Dict, Any


def record_key(repository: str, name: str) -> str:
    return f"{repository}/{name}"


@dataclass(frozen=True)
class PackageRecord:
    """Persisted state of one installed package."""
    repository: str
    name: str
    commit: str
    enabled: bool = True
    installed_at: str = ""
    updated_at: Optional[str] = None
    orphaned: bool = False

    @property
    def key(self) -> str:
        return record_key(self.repository, self.name)

    @classmethod
    def create(cls, repository: str, name: str, commit: str) -> 'PackageRecord':
        """New enabled record stamped with the current time."""
        return cls(
            repository=repository,
            name=name,
            commit=commit,
            enabled=True,
            installed_at=datetime.now().isoformat(timespec='seconds'),
        )

    def with_commit(self, commit: str) -> 'PackageRecord':
        return replace(self, commit=commit, orphaned=False,
                       updated_at=datetime.now().isoformat(timespec='seconds'))

    def with_enabled(self, enabled: bool) -> 'PackageRecord':
        return replace(self, enabled=enabled)

    def as_orphaned(self) -> 'PackageRecord':
        return replace(self, orphaned=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repository': self.repository,
            'name': self.name,
            'commit': self.commit,
            'enabled': self.enabled,
            'installed_at': self.installed_at,
            'updated_at': self.updated_at,
            'orphaned': self.orphaned,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PackageRecord':
        return cls(
            repository=data['repository'],
            name=data['name'],
            commit=data.get('commit', ''),
            enabled=bool(data.get('enabled', True)),
            installed_at=data.get('installed_at', ''),
            updated_at=data.get('updated_at'),
            orphaned=bool(data.get('orphaned', False)),
        )
