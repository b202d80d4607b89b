"""
Source sync engine for shellpm.

Clones or fast-forwards repository working copies. The engine never
force-resets and never discards local modifications: anything that is
not a clean fast-forward is reported as a SyncConflict and the working
copy is left as it was.
"""

import logging
import shutil
from typing import Dict, Iterable, Optional, Union

from ..domain.operation import SyncResult
from ..domain.repository import Repository
from ..errors import SyncConflict, SyncError
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Keeps repository working copies in step with their remotes.

    Example:
        engine = SyncEngine(GitClient())
        result = engine.sync_repository(repo)
        if result.changed:
            print(f"{repo.name} is now at {result.commit}")
    """

    def __init__(self, git_client: Optional[GitClient] = None):
        self.git = git_client or GitClient()

    def sync_repository(self, repo: Repository) -> SyncResult:
        """
        Clone the repository if it has no working copy, otherwise fetch
        and fast-forward the tracked branch.

        Re-running with no upstream change returns ``changed=False`` and
        leaves the working copy alone.

        Raises:
            SyncError: clone/fetch failed, or the path is not a working copy
            SyncConflict: local changes or divergence prevent a fast-forward
        """
        if not repo.path.exists():
            return self._clone(repo)

        if not self.git.is_git_repo(repo.path):
            raise SyncError(repo.name, f"{repo.path} exists but is not a git working copy")

        return self._fast_forward(repo)

    def _clone(self, repo: Repository) -> SyncResult:
        logger.info(f"Cloning {repo.name} from {repo.url}")
        repo.path.parent.mkdir(parents=True, exist_ok=True)

        result = self.git.clone(repo.url, repo.path, branch=repo.branch)
        if not result.ok:
            if repo.path.exists():
                shutil.rmtree(repo.path, ignore_errors=True)
            raise SyncError(repo.name, f"clone failed: {result.message}")

        commit = self.git.head(repo.path)
        if commit is None:
            raise SyncError(repo.name, "cloned repository has no commits")

        return SyncResult(repository=repo.name, commit=commit, changed=True, cloned=True)

    def _fast_forward(self, repo: Repository) -> SyncResult:
        before = self.git.head(repo.path)
        if before is None:
            raise SyncError(repo.name, "working copy has no HEAD commit")

        result = self.git.fetch(repo.path)
        if not result.ok:
            raise SyncError(repo.name, f"fetch failed: {result.message}")

        upstream = self.git.upstream(repo.path)
        target = self.git.upstream_commit(repo.path) if upstream else None
        if target is None:
            raise SyncError(repo.name, "current branch has no upstream tracking branch")

        if before == target:
            logger.debug(f"{repo.name} is up to date at {before[:12]}")
            return SyncResult(repository=repo.name, commit=before, previous_commit=before)

        if self.git.is_ancestor(repo.path, target, before):
            logger.info(f"{repo.name} has local commits not on {upstream}, leaving it as is")
            return SyncResult(repository=repo.name, commit=before, previous_commit=before)

        if not self.git.is_ancestor(repo.path, before, target):
            raise SyncConflict(repo.name, f"local branch has diverged from {upstream}")

        if self.git.has_uncommitted_changes(repo.path):
            raise SyncConflict(repo.name, "working copy has uncommitted changes")

        result = self.git.merge_ff_only(repo.path, upstream)
        if not result.ok:
            raise SyncConflict(repo.name, f"fast-forward failed: {result.message}")

        after = self.git.head(repo.path) or target
        logger.info(f"Updated {repo.name}: {before[:12]} -> {after[:12]}")
        return SyncResult(
            repository=repo.name,
            commit=after,
            previous_commit=before,
            changed=after != before,
        )

    def sync_all(self, repos: Iterable[Repository]) -> Dict[str, Union[SyncResult, SyncError]]:
        """
        Sync every repository; one failure does not stop the others.

        Returns:
            Repository name -> SyncResult, or the SyncError it raised
        """
        results: Dict[str, Union[SyncResult, SyncError]] = {}
        for repo in repos:
            try:
                results[repo.name] = self.sync_repository(repo)
            except SyncError as e:
                logger.error(str(e))
                results[repo.name] = e
        return results
