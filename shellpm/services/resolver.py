"""
Package resolver for shellpm.

Turns ``[repo/]name`` tokens into concrete (Repository, package name)
pairs. Resolution reads the last-synced working copies only: it never
syncs and never writes state.
"""

import fnmatch
import logging
from typing import List, Optional, Tuple

from ..domain.record import PackageRecord
from ..domain.repository import Package, Repository, is_valid_name
from ..errors import AmbiguousPackage, InvalidName, PackageNotFound, PackageNotInstalled
from .registry_service import RepositoryRegistry
from .state_service import PackageStateStore

logger = logging.getLogger(__name__)


def parse_token(token: str) -> Tuple[Optional[str], str]:
    """
    Split a package token into (repository, name).

    >>> parse_token("core/git")
    ('core', 'git')
    >>> parse_token("git")
    (None, 'git')
    """
    token = token.strip()
    if token.count('/') > 1:
        raise InvalidName(f"Invalid package token: '{token}'")
    repo_name, sep, name = token.rpartition('/')
    if sep and not is_valid_name(repo_name):
        raise InvalidName(f"Invalid repository name in '{token}'")
    if not is_valid_name(name):
        raise InvalidName(f"Invalid package token: '{token}'")
    return (repo_name or None), name


def _is_glob(pattern: str) -> bool:
    return any(char in pattern for char in '*?[')


class PackageResolver:
    """Name resolution against registered repositories and installed records."""

    def __init__(self, registry: RepositoryRegistry, state: PackageStateStore):
        self.registry = registry
        self.state = state

    def packages(self, repo: Repository) -> List[Package]:
        """Packages in a synced repository: its non-hidden subdirectories."""
        if not self.registry.is_synced(repo):
            return []
        return [
            Package(name=entry.name, repository=repo.name, path=entry)
            for entry in sorted(repo.path.iterdir(), key=lambda p: p.name)
            if entry.is_dir() and not entry.name.startswith('.')
        ]

    def package(self, repo: Repository, name: str) -> Optional[Package]:
        """A single package of a synced repository, if present."""
        path = repo.path / name
        if self.registry.is_synced(repo) and path.is_dir() and not name.startswith('.'):
            return Package(name=name, repository=repo.name, path=path)
        return None

    def resolve(self, token: str) -> Tuple[Repository, str]:
        """
        Resolve a token against the registered repositories.

        Raises:
            InvalidName: malformed token
            RepositoryNotFound: explicit repository is not registered
            PackageNotFound: no synced repository has the package
            AmbiguousPackage: a bare name exists in several repositories
        """
        repo_name, name = parse_token(token)

        if repo_name:
            repo = self.registry.resolve(repo_name)
            # Unsynced repositories are verified after their first sync
            if self.registry.is_synced(repo) and self.package(repo, name) is None:
                raise PackageNotFound(token, f"Package '{name}' not found in repository '{repo_name}'")
            return repo, name

        matches = [
            repo for repo in self.registry.list()
            if self.package(repo, name) is not None
        ]
        if not matches:
            raise PackageNotFound(token)
        if len(matches) > 1:
            raise AmbiguousPackage(token, [f"{repo.name}/{name}" for repo in matches])
        return matches[0], name

    def resolve_installed(self, token: str) -> PackageRecord:
        """
        Resolve a token against installed records, using the same grammar
        and ambiguity rules. Works for records whose repository is gone.

        Raises:
            PackageNotInstalled: no record matches
            AmbiguousPackage: a bare name is installed from several repositories
        """
        repo_name, name = parse_token(token)

        if repo_name:
            record = self.state.get(repo_name, name)
            if record is None:
                raise PackageNotInstalled(token)
            return record

        matches = [record for record in self.state.list_all() if record.name == name]
        if not matches:
            raise PackageNotInstalled(token)
        if len(matches) > 1:
            raise AmbiguousPackage(token, [record.key for record in matches])
        return matches[0]

    def search(self, pattern: str) -> List[Package]:
        """
        Packages whose name matches pattern, across synced repositories.

        Patterns with ``*``, ``?`` or ``[`` are case-insensitive globs,
        anything else is a case-insensitive substring.
        """
        needle = pattern.lower()
        found = []
        for repo in self.registry.list():
            for package in self.packages(repo):
                candidate = package.name.lower()
                if _is_glob(needle):
                    matched = fnmatch.fnmatchcase(candidate, needle)
                else:
                    matched = needle in candidate
                if matched:
                    found.append(package)
        logger.debug(f"Search '{pattern}' matched {len(found)} package(s)")
        return found
