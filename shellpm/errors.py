"""
Error taxonomy for the package lifecycle engine.

Every error a single target can run into derives from ShellpmError.
Batch loops catch ShellpmError per target and record it; anything else
is a bug and propagates.
"""

from typing import List, Optional, Sequence, TYPE_CHECKING

from .exit_codes import (
    CommandError,
    NOT_FOUND,
    SYNC_ERROR,
    CONFLICT,
    HOOK_ERROR,
    DATA_ERROR,
)

if TYPE_CHECKING:
    from .domain.hook import HookOutcome
    from .domain.record import PackageRecord


class ShellpmError(CommandError):
    """Base class for all lifecycle errors."""

    exit_code_default = DATA_ERROR

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message, exit_code if exit_code is not None else self.exit_code_default)

    @property
    def kind(self) -> str:
        """Short error kind used in reports."""
        return type(self).__name__


class InvalidName(ShellpmError):
    """A repository name or package token does not match the grammar."""


class DuplicateRepository(ShellpmError):
    exit_code_default = CONFLICT

    def __init__(self, name: str):
        super().__init__(f"Repository '{name}' is already registered")
        self.name = name


class RepositoryNotFound(ShellpmError):
    exit_code_default = NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Repository '{name}' is not registered")
        self.name = name


class RepositoryInUse(ShellpmError):
    """Raised when removing a repository that enabled packages still reference."""

    exit_code_default = CONFLICT

    def __init__(self, name: str, records: Sequence['PackageRecord']):
        names = ", ".join(record.key for record in records)
        super().__init__(
            f"Repository '{name}' is in use by enabled packages: {names} "
            f"(use --force to remove anyway)"
        )
        self.name = name
        self.records = list(records)


class PackageNotFound(ShellpmError):
    exit_code_default = NOT_FOUND

    def __init__(self, token: str, message: Optional[str] = None):
        super().__init__(message or f"Package '{token}' not found")
        self.token = token


class AmbiguousPackage(ShellpmError):
    """A bare package name matched more than one repository."""

    exit_code_default = CONFLICT

    def __init__(self, token: str, candidates: List[str]):
        super().__init__(
            f"Package '{token}' is ambiguous, use one of: {', '.join(candidates)}"
        )
        self.token = token
        self.candidates = list(candidates)


class PackageNotInstalled(ShellpmError):
    exit_code_default = NOT_FOUND

    def __init__(self, token: str):
        super().__init__(f"Package '{token}' is not installed")
        self.token = token


class SyncError(ShellpmError):
    """git clone/fetch failed (network, auth or disk)."""

    exit_code_default = SYNC_ERROR

    def __init__(self, repository: str, message: str):
        super().__init__(f"{repository}: {message}")
        self.repository = repository


class SyncConflict(SyncError):
    """The working copy cannot be fast-forwarded; it was left untouched."""

    exit_code_default = CONFLICT


class HookFailure(ShellpmError):
    exit_code_default = HOOK_ERROR

    def __init__(self, outcome: 'HookOutcome'):
        detail = outcome.stderr.strip().splitlines()[-1] if outcome.stderr and outcome.stderr.strip() else ""
        message = f"{outcome.hook} hook of {outcome.package} exited with {outcome.exit_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.outcome = outcome
