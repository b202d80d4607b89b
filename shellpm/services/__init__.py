"""
Service layer for shellpm.

Contains the package lifecycle engine, built on the domain and
infrastructure layers:
- RepositoryRegistry: registered package sources
- PackageResolver: ``[repo/]name`` token resolution
- SyncEngine: clone / fast-forward of working copies
- HookExecutor: isolated lifecycle hook execution
- PackageStateStore: installed-package records
- PackageManager: the command entry point tying them together
"""

from .state_service import PackageStateStore
from .registry_service import RepositoryRegistry
from .resolver import PackageResolver, parse_token
from .sync_service import SyncEngine
from .hook_service import HookExecutor
from .package_service import PackageManager

__all__ = [
    'PackageStateStore',
    'RepositoryRegistry',
    'PackageResolver',
    'parse_token',
    'SyncEngine',
    'HookExecutor',
    'PackageManager',
]
