"""
Repository and package domain objects for shellpm.

A Repository is a registered git-backed source of packages. A Package is
a subdirectory of a synced repository; it is derived from the working
copy and never persisted on its own.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any

NAME_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')


def is_valid_name(name: str) -> bool:
    """Check a repository or package name against the token grammar."""
    return bool(name) and bool(NAME_PATTERN.fullmatch(name))


@dataclass(frozen=True)
class Repository:
    """A registered package source."""
    name: str
    url: str
    path: Path
    branch: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'name': self.name,
            'url': self.url,
            'path': str(self.path),
        }
        if self.branch:
            result['branch'] = self.branch
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Repository':
        return cls(
            name=data['name'],
            url=data['url'],
            path=Path(data['path']),
            branch=data.get('branch') or None,
        )


@dataclass(frozen=True)
class Package:
    """A package living inside a repository working copy."""
    name: str
    repository: str
    path: Path

    @property
    def key(self) -> str:
        """Qualified ``repo/name`` form, unique across repositories."""
        return f"{self.repository}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'repository': self.repository,
            'path': str(self.path),
        }

    def __str__(self) -> str:
        return self.key
