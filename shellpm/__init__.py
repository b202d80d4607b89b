"""
shellpm - A package manager for the interactive shell environment.

Packages are directories inside registered git repositories. A package
may ship a ``package.sh`` that defines any of four lifecycle functions
(install, update, remove, load). shellpm clones and fast-forwards the
repositories, runs the hooks in isolated shell processes and keeps a
record of every installed package.

Quick Start:
    from shellpm import PackageManager, load_config

    manager = PackageManager.from_config(load_config())
    manager.add_repository("core", "https://example.com/shell-packages.git")
    manager.init()

    report = manager.install(["core/git", "prompt"])
    for detail in report.details:
        print(detail.target, detail.status.value)

    # Source enabled packages from a shell rc file:
    #   eval "$(shellpm load)"

Domain Objects:
    Repository - A registered package source
    Package - A directory inside a repository working copy
    PackageRecord - An installed package and the commit it was installed at
    BatchReport - Per-target results of a batch command
"""

__version__ = "0.3.0"

from .config import load_config
from .domain import (
    Repository,
    Package,
    PackageRecord,
    Command,
    Event,
    BatchReport,
    TargetResult,
    OperationStatus,
)
from .errors import ShellpmError
from .services import PackageManager

__all__ = [
    '__version__',
    'load_config',
    'Repository',
    'Package',
    'PackageRecord',
    'Command',
    'Event',
    'BatchReport',
    'TargetResult',
    'OperationStatus',
    'ShellpmError',
    'PackageManager',
]
