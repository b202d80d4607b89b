"""
Repository registry for shellpm.

Tracks registered package sources in ``<root>/repositories.json`` and
owns the ``<root>/repos/<name>`` working-copy layout. Every name
resolution goes through the registry.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..domain.record import PackageRecord
from ..domain.repository import Repository, is_valid_name
from ..errors import DuplicateRepository, InvalidName, RepositoryInUse, RepositoryNotFound
from ..infra.file_store import FileStore
from ..infra.git_client import GitClient
from .state_service import PackageStateStore

logger = logging.getLogger(__name__)

REGISTRY_FILENAME = 'repositories.json'
REPOS_DIRNAME = 'repos'


class RepositoryRegistry:
    """
    Registered repositories and their local clone paths.

    Example:
        registry = RepositoryRegistry(root, state)
        registry.add("core", "https://example.com/core-packages.git")
        repo = registry.resolve("core")
    """

    def __init__(
        self,
        root: Path,
        state: PackageStateStore,
        store: Optional[FileStore] = None,
        git_client: Optional[GitClient] = None,
    ):
        self.root = Path(root)
        self.state = state
        self.store = store or FileStore(self.root / REGISTRY_FILENAME)
        self.git = git_client or GitClient()

    @property
    def repos_dir(self) -> Path:
        return self.root / REPOS_DIRNAME

    def path_for(self, name: str) -> Path:
        return self.repos_dir / name

    def list(self) -> List[Repository]:
        """All registered repositories, sorted by name."""
        return [Repository.from_dict(data) for _, data in sorted(self.store.items())]

    def get(self, name: str) -> Optional[Repository]:
        data = self.store.get(name)
        return Repository.from_dict(data) if data else None

    def resolve(self, name: str) -> Repository:
        repo = self.get(name)
        if repo is None:
            raise RepositoryNotFound(name)
        return repo

    def is_synced(self, repo: Repository) -> bool:
        """True once the working copy has been cloned."""
        return repo.path.is_dir() and self.git.is_git_repo(repo.path)

    def describe(self, repo: Repository) -> Dict[str, Any]:
        """
        Registered settings plus what the working copy actually tracks.

        ``remote_url`` and ``checked_out`` come from the clone and are None
        until the repository has been synced. A remote_url that differs
        from ``url`` means the clone predates a change to the registration.
        """
        entry = repo.to_dict()
        entry['synced'] = self.is_synced(repo)
        entry['remote_url'] = self.git.remote_url(repo.path) if entry['synced'] else None
        entry['checked_out'] = self.git.current_branch(repo.path) if entry['synced'] else None
        return entry

    def add(self, name: str, url: str, branch: Optional[str] = None) -> Repository:
        """
        Register a repository. Nothing is cloned until it is synced.

        Raises:
            InvalidName: name does not match the token grammar
            DuplicateRepository: name is already registered
        """
        if not is_valid_name(name):
            raise InvalidName(f"Invalid repository name: '{name}'")
        if not url:
            raise InvalidName(f"Repository '{name}' needs a remote URL")
        if name in self.store:
            raise DuplicateRepository(name)

        repo = Repository(name=name, url=url, path=self.path_for(name), branch=branch)
        self.store.set(name, repo.to_dict())
        logger.info(f"Registered repository '{name}' ({url})")
        return repo

    def remove(self, name: str, force: bool = False) -> Tuple[Repository, List[PackageRecord]]:
        """
        Unregister a repository and delete its working copy.

        Records that reference the repository are marked orphaned, never
        deleted; already-sourced shell state is not touched.

        Args:
            name: Repository to remove
            force: Remove even while enabled packages reference it

        Returns:
            The removed repository and the records now marked orphaned

        Raises:
            RepositoryNotFound: name is not registered
            RepositoryInUse: enabled packages reference it and force is False
        """
        repo = self.resolve(name)

        in_use = [record for record in self.state.for_repository(name) if record.enabled]
        if in_use and not force:
            raise RepositoryInUse(name, in_use)

        orphaned = self.state.mark_orphaned(name)
        self.store.delete(name)

        if repo.path.exists():
            shutil.rmtree(repo.path)
        logger.info(f"Removed repository '{name}'")
        return repo, orphaned
