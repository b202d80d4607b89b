"""
Package lifecycle service for shellpm.

The package manager is the core's entry point. The CLI hands it a
Command; batch commands walk their targets one at a time, in
command-line order, and turn every target into a TargetResult. A failed
target never stops the rest of the batch and no ShellpmError escapes a
batch loop.

Per-target state machines:

    install: Unknown -> Resolved -> Synced -> Installed (record created)
    update:  Installed -> Synced -> Installed (record commit updated)
    remove:  Installed -> Uninstalled (record deleted)
"""

import logging
import shlex
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..capabilities import Capabilities
from ..config import get_root_dir, load_config
from ..domain.command import Command
from ..domain.event import ENVIRONMENT_CHANGED, Event
from ..domain.operation import BatchReport, OperationStatus, SyncResult, TargetResult
from ..domain.record import PackageRecord
from ..domain.repository import Package, Repository
from ..errors import (
    HookFailure,
    PackageNotFound,
    RepositoryNotFound,
    ShellpmError,
    SyncError,
)
from ..infra.git_client import GitClient
from .hook_service import HookExecutor
from .registry_service import RepositoryRegistry
from .resolver import PackageResolver
from .state_service import PackageStateStore
from .sync_service import SyncEngine

logger = logging.getLogger(__name__)

Listener = Callable[[Event], None]

HEALTHY = 'ok'
ORPHANED = 'orphaned'
DANGLING = 'dangling'


class PackageManager:
    """
    Orchestrates registry, resolver, sync engine, hook executor and
    state store for every shellpm command.

    Example:
        manager = PackageManager.from_config(load_config())
        report = manager.install(["core/git", "prompt"])
        for detail in report.details:
            print(detail.target, detail.status.value)
    """

    def __init__(
        self,
        root: Path,
        registry: RepositoryRegistry,
        resolver: PackageResolver,
        sync: SyncEngine,
        hooks: HookExecutor,
        state: PackageStateStore,
        default_repositories: Optional[Dict[str, str]] = None,
    ):
        self.root = Path(root)
        self.registry = registry
        self.resolver = resolver
        self.sync = sync
        self.hooks = hooks
        self.state = state
        self.default_repositories = dict(default_repositories or {})
        self._listeners: List[Listener] = []

    @classmethod
    def from_config(
        cls,
        config: Optional[Dict[str, Any]] = None,
        root: Optional[Path] = None,
        git_client: Optional[GitClient] = None,
        capabilities: Optional[Capabilities] = None,
    ) -> 'PackageManager':
        """Wire up every component from a configuration dict."""
        config = config or load_config()
        root = Path(root).expanduser() if root else get_root_dir(config)
        git_section = config.get('git', {})
        hooks_section = config.get('hooks', {})

        git = git_client or GitClient(timeout=git_section.get('timeout_seconds'))
        state = PackageStateStore(root)
        registry = RepositoryRegistry(root, state, git_client=git)
        executor = HookExecutor(
            capabilities or Capabilities(root=root),
            script_name=hooks_section.get('script', 'package.sh'),
            shell=hooks_section.get('shell', 'bash'),
            capture_output=hooks_section.get('capture_output', True),
            inherit_env=hooks_section.get('inherit_env', ()),
        )
        return cls(
            root=root,
            registry=registry,
            resolver=PackageResolver(registry, state),
            sync=SyncEngine(git),
            hooks=executor,
            state=state,
            default_repositories=config.get('general', {}).get('default_repositories', {}),
        )

    # -- events -------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        """Register a callback for events emitted after commands."""
        self._listeners.append(listener)

    def _emit(self, report: BatchReport) -> None:
        if not report.environment_changed:
            return
        packages = tuple(
            detail.package for detail in report.details
            if detail.status == OperationStatus.SUCCESS and detail.package
        )
        event = Event(type=ENVIRONMENT_CHANGED, command=report.command, packages=packages)
        logger.debug(f"Emitting {event}")
        for listener in self._listeners:
            listener(event)

    # -- entry point --------------------------------------------------------

    def execute(self, command: Command) -> Union[BatchReport, List[Dict[str, Any]]]:
        """Run a parsed command."""
        if command.name == 'init':
            return self.init()
        if command.name == 'list':
            return self.list_available() if command.available else self.list_installed()
        if command.name == 'search':
            return [package.to_dict() for package in self.resolver.search(command.pattern or '')]
        if command.name == 'install':
            return self.install(command.tokens)
        if command.name == 'update':
            return self.update(command.tokens)
        if command.name == 'remove':
            return self.remove(command.tokens, force=command.force)
        if command.name == 'enable':
            return self.enable(command.tokens)
        if command.name == 'disable':
            return self.disable(command.tokens)
        raise ValueError(f"Unknown command: {command.name}")

    # -- repositories -------------------------------------------------------

    def init(self) -> BatchReport:
        """
        Create the root layout, register the configured default
        repositories and sync every registered repository.
        """
        report = BatchReport(command='init')
        self.registry.repos_dir.mkdir(parents=True, exist_ok=True)

        for name, url in sorted(self.default_repositories.items()):
            if self.registry.get(name) is None:
                try:
                    self.registry.add(name, url)
                except ShellpmError as e:
                    report.add(self._failure(name, 'register', e, repository=name))

        for name, outcome in self.sync.sync_all(self.registry.list()).items():
            if isinstance(outcome, SyncError):
                report.add(self._failure(name, 'sync', outcome, repository=name))
            else:
                report.add(self._sync_detail(outcome))

        return report

    def add_repository(self, name: str, url: str, branch: Optional[str] = None) -> Repository:
        return self.registry.add(name, url, branch=branch)

    def remove_repository(self, name: str, force: bool = False) -> Tuple[Repository, List[PackageRecord]]:
        """Unregister a repository; returns the records marked orphaned."""
        repo, orphaned = self.registry.remove(name, force=force)
        if orphaned:
            report = BatchReport(command='repo remove')
            for record in orphaned:
                report.add(TargetResult(
                    target=record.key,
                    status=OperationStatus.SUCCESS,
                    action='orphaned',
                    repository=record.repository,
                    package=record.key,
                ))
            self._emit(report)
        return repo, orphaned

    def sync_repository(self, name: str) -> TargetResult:
        """Sync a single repository; a SyncError propagates to the caller."""
        return self._sync_detail(self.sync.sync_repository(self.registry.resolve(name)))

    def sync_repositories(self, names: Optional[List[str]] = None) -> BatchReport:
        """Sync the named repositories, or all of them."""
        report = BatchReport(command='sync')
        repos = []
        for name in names or [repo.name for repo in self.registry.list()]:
            try:
                repos.append(self.registry.resolve(name))
            except RepositoryNotFound as e:
                report.add(self._failure(name, 'sync', e))

        for name, outcome in self.sync.sync_all(repos).items():
            if isinstance(outcome, SyncError):
                report.add(self._failure(name, 'sync', outcome, repository=name))
            else:
                report.add(self._sync_detail(outcome))
        return report

    # -- queries ------------------------------------------------------------

    def record_status(self, record: PackageRecord) -> str:
        """ok, orphaned, or dangling (repository/package gone or unsynced)."""
        if record.orphaned:
            return ORPHANED
        repo = self.registry.get(record.repository)
        if repo is None or self.resolver.package(repo, record.name) is None:
            return DANGLING
        return HEALTHY

    def dangling_records(self) -> List[PackageRecord]:
        """Records that can no longer be sourced."""
        return [record for record in self.state.list_all() if self.record_status(record) != HEALTHY]

    def list_installed(self) -> List[Dict[str, Any]]:
        results = []
        for record in self.state.list_all():
            entry = record.to_dict()
            entry['status'] = self.record_status(record)
            results.append(entry)
        return results

    def list_available(self) -> List[Dict[str, Any]]:
        results = []
        for repo in self.registry.list():
            for package in self.resolver.packages(repo):
                entry = package.to_dict()
                entry['installed'] = self.state.get(repo.name, package.name) is not None
                results.append(entry)
        return results

    def search(self, pattern: str) -> List[Package]:
        return self.resolver.search(pattern)

    # -- batch commands -----------------------------------------------------

    def install(self, tokens) -> BatchReport:
        """Install packages; each target is resolved, synced and hooked in turn."""
        report = BatchReport(command='install')
        synced: Dict[str, SyncResult] = {}
        for token in tokens:
            report.add(self._guard(token, 'install', lambda t=token: self._install_one(t, synced)))
        self._emit(report)
        return report

    def _install_one(self, token: str, synced: Dict[str, SyncResult]) -> TargetResult:
        repo, name = self.resolver.resolve(token)

        existing = self.state.get(repo.name, name)
        # an orphaned record lost its working copy; installing again replaces it
        if existing is not None and not existing.orphaned:
            return TargetResult(
                target=token,
                status=OperationStatus.SKIPPED,
                action='install',
                repository=repo.name,
                package=existing.key,
                message='already installed',
            )

        sync = self._sync_once(repo, synced)
        package = self.resolver.package(repo, name)
        if package is None:
            raise PackageNotFound(token, f"Package '{name}' not found in repository '{repo.name}'")

        outcome = self.hooks.run_hook(package, 'install')
        if not outcome.succeeded:
            raise HookFailure(outcome)

        record = PackageRecord.create(repo.name, name, sync.commit)
        self.state.put(record)
        return TargetResult(
            target=token,
            status=OperationStatus.SUCCESS,
            action='installed',
            repository=repo.name,
            package=package.key,
            metadata={'commit': sync.commit, 'hook_ran': outcome.implemented},
        )

    def update(self, tokens=()) -> BatchReport:
        """
        Update installed packages. With no tokens, every installed package
        that is not orphaned is updated.
        """
        report = BatchReport(command='update')
        synced: Dict[str, SyncResult] = {}
        targets = list(tokens) or [
            record.key for record in self.state.list_all() if not record.orphaned
        ]
        for token in targets:
            report.add(self._guard(token, 'update', lambda t=token: self._update_one(t, synced)))
        self._emit(report)
        return report

    def _update_one(self, token: str, synced: Dict[str, SyncResult]) -> TargetResult:
        record = self.resolver.resolve_installed(token)
        repo = self.registry.resolve(record.repository)

        sync = self._sync_once(repo, synced)
        package = self.resolver.package(repo, record.name)
        if package is None:
            raise PackageNotFound(token, f"Package '{record.name}' no longer exists in '{repo.name}'")

        if record.commit == sync.commit and not record.orphaned:
            return TargetResult(
                target=token,
                status=OperationStatus.SKIPPED,
                action='update',
                repository=repo.name,
                package=record.key,
                message='up to date',
            )

        outcome = self.hooks.run_hook(package, 'update')
        if not outcome.succeeded:
            raise HookFailure(outcome)

        self.state.put(record.with_commit(sync.commit))
        return TargetResult(
            target=token,
            status=OperationStatus.SUCCESS,
            action='updated',
            repository=repo.name,
            package=record.key,
            metadata={
                'previous_commit': record.commit,
                'commit': sync.commit,
                'hook_ran': outcome.implemented,
            },
        )

    def remove(self, tokens, force: bool = False) -> BatchReport:
        """
        Remove packages. A failed remove hook keeps the record unless
        ``force`` is set.
        """
        report = BatchReport(command='remove')
        for token in tokens:
            report.add(self._guard(token, 'remove', lambda t=token: self._remove_one(t, force)))
        self._emit(report)
        return report

    def _remove_one(self, token: str, force: bool) -> TargetResult:
        record = self.resolver.resolve_installed(token)
        package = self._installed_package(record)

        message = None
        hook_ran = False
        if package is not None:
            outcome = self.hooks.run_hook(package, 'remove')
            hook_ran = outcome.implemented
            if not outcome.succeeded:
                failure = HookFailure(outcome)
                if not force:
                    raise failure
                message = f"forced: {failure}"
                logger.warning(f"Removing {record.key} despite failure: {failure}")
        else:
            message = f"package files are gone ({self.record_status(record)}), record removed"

        self.state.delete(record.repository, record.name)
        return TargetResult(
            target=token,
            status=OperationStatus.SUCCESS,
            action='removed',
            repository=record.repository,
            package=record.key,
            message=message,
            metadata={'hook_ran': hook_ran},
        )

    def enable(self, tokens) -> BatchReport:
        return self._toggle(tokens, True)

    def disable(self, tokens) -> BatchReport:
        return self._toggle(tokens, False)

    def _toggle(self, tokens, enabled: bool) -> BatchReport:
        command = 'enable' if enabled else 'disable'
        report = BatchReport(command=command)
        for token in tokens:
            report.add(self._guard(token, command, lambda t=token: self._toggle_one(t, enabled)))
        self._emit(report)
        return report

    def _toggle_one(self, token: str, enabled: bool) -> TargetResult:
        record = self.resolver.resolve_installed(token)
        action = 'enabled' if enabled else 'disabled'
        if record.enabled == enabled:
            return TargetResult(
                target=token,
                status=OperationStatus.SKIPPED,
                action=action,
                repository=record.repository,
                package=record.key,
                message=f"already {action}",
            )
        self.state.put(record.with_enabled(enabled))
        return TargetResult(
            target=token,
            status=OperationStatus.SUCCESS,
            action=action,
            repository=record.repository,
            package=record.key,
        )

    # -- environment load ---------------------------------------------------

    def load_script(self) -> str:
        """
        Shell code that sources every healthy enabled package, in
        ``repo/name`` order. Unhealthy records are skipped with a warning.
        """
        parts = [
            "# generated by shellpm load",
            f"export SHELLPM_ROOT={shlex.quote(str(self.root))}",
            f"export SHELLPM_OS={shlex.quote(self.hooks.capabilities.os_name)}",
            self.hooks.capabilities.prelude.strip(),
        ]
        for record in self.state.list_enabled():
            status = self.record_status(record)
            if status != HEALTHY:
                logger.warning(f"Skipping {record.key}: {status}")
                parts.append(f"# {record.key}: skipped ({status})")
                continue
            package = self._installed_package(record)
            parts.append(self.hooks.load_snippet(package).rstrip())
        return "\n".join(parts) + "\n"

    # -- helpers ------------------------------------------------------------

    def _installed_package(self, record: PackageRecord) -> Optional[Package]:
        repo = self.registry.get(record.repository)
        if repo is None or record.orphaned:
            return None
        return self.resolver.package(repo, record.name)

    def _sync_once(self, repo: Repository, synced: Dict[str, SyncResult]) -> SyncResult:
        """Sync a repository at most once per batch."""
        if repo.name not in synced:
            synced[repo.name] = self.sync.sync_repository(repo)
        return synced[repo.name]

    def _guard(self, target: str, action: str, step: Callable[[], TargetResult]) -> TargetResult:
        """Run one target's chain, turning lifecycle errors into a failed result."""
        try:
            result = step()
        except ShellpmError as e:
            logger.error(f"{action} {target} failed: {e}")
            return self._failure(target, action, e)
        logger.debug(f"{action} {target}: {result.status.value}")
        return result

    @staticmethod
    def _failure(target: str, action: str, error: ShellpmError, repository: Optional[str] = None) -> TargetResult:
        return TargetResult(
            target=target,
            status=OperationStatus.FAILED,
            action=action,
            repository=repository,
            error=str(error),
            error_kind=error.kind,
        )

    @staticmethod
    def _sync_detail(result: SyncResult) -> TargetResult:
        action = 'cloned' if result.cloned else ('updated' if result.changed else 'unchanged')
        return TargetResult(
            target=result.repository,
            status=OperationStatus.SUCCESS if result.changed else OperationStatus.SKIPPED,
            action=action,
            repository=result.repository,
            metadata={'commit': result.commit},
        )
