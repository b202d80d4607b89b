"""
Operation result domain objects for shellpm.

Batch commands (install, update, remove, ...) produce one TargetResult
per command-line token. Results are collected into a BatchReport; no
exception crosses the batch boundary.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class OperationStatus(Enum):
    """Status of an individual target."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncResult:
    """Outcome of syncing one repository working copy."""
    repository: str
    commit: str
    previous_commit: Optional[str] = None
    changed: bool = False
    cloned: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repository': self.repository,
            'commit': self.commit,
            'previous_commit': self.previous_commit,
            'changed': self.changed,
            'cloned': self.cloned,
        }


@dataclass
class TargetResult:
    """
    Details of what happened to a single target of a batch.

    A target is a package token (install/update/remove) or a
    repository name (init, repo commands).
    """
    target: str
    status: OperationStatus
    action: str  # e.g., "installed", "updated", "removed", "synced"
    repository: Optional[str] = None
    package: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.status == OperationStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            'target': self.target,
            'status': self.status.value,
            'action': self.action,
        }
        if self.repository:
            result['repository'] = self.repository
        if self.package:
            result['package'] = self.package
        if self.message:
            result['message'] = self.message
        if self.error:
            result['error'] = self.error
            result['error_kind'] = self.error_kind
        if self.metadata:
            result.update(self.metadata)
        return result


@dataclass
class BatchReport:
    """
    Summary of a batch command across all of its targets.
    """
    command: str
    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[TargetResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no target failed."""
        return self.failed == 0

    @property
    def environment_changed(self) -> bool:
        """True if a target changed what the interactive shell sources."""
        return self.successful > 0

    def add(self, detail: TargetResult) -> None:
        """Add a target result and update counts."""
        self.details.append(detail)
        self.total += 1

        if detail.status == OperationStatus.SUCCESS:
            self.successful += 1
        elif detail.status == OperationStatus.SKIPPED:
            self.skipped += 1
        elif detail.status == OperationStatus.FAILED:
            self.failed += 1
            if detail.error:
                self.errors.append(f"{detail.target}: {detail.error}")

    def get(self, target: str) -> Optional[TargetResult]:
        """Result for a target, if it was part of the batch."""
        for detail in self.details:
            if detail.target == target:
                return detail
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': 'summary',
            'command': self.command,
            'total': self.total,
            'successful': self.successful,
            'skipped': self.skipped,
            'failed': self.failed,
            'errors': self.errors,
        }
