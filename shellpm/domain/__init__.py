"""
Domain layer for shellpm.

Contains pure domain objects with no I/O or side effects:
- Repository / Package: package sources and their contents
- PackageRecord: installed-state entry
- HookSet / HookOutcome: lifecycle entry points and their results
- TargetResult / BatchReport / SyncResult: command results
- Command / Event: what goes into and comes out of the core
"""

from .repository import Repository, Package, is_valid_name
from .record import PackageRecord, record_key
from .hook import HookSet, HookOutcome, HOOK_NAMES
from .operation import OperationStatus, TargetResult, BatchReport, SyncResult
from .command import Command, COMMANDS, BATCH_COMMANDS
from .event import Event, ENVIRONMENT_CHANGED

__all__ = [
    'Repository',
    'Package',
    'is_valid_name',
    'PackageRecord',
    'record_key',
    'HookSet',
    'HookOutcome',
    'HOOK_NAMES',
    'OperationStatus',
    'TargetResult',
    'BatchReport',
    'SyncResult',
    'Command',
    'COMMANDS',
    'BATCH_COMMANDS',
    'Event',
    'ENVIRONMENT_CHANGED',
]
