"""
Hook domain objects for shellpm.

A package script may define up to four lifecycle entry points. A hook
that is not defined is a valid state, not an error.
"""

from dataclasses import dataclass
from typing import Dict, Any, FrozenSet

HOOK_NAMES = ('install', 'update', 'remove', 'load')


@dataclass(frozen=True)
class HookSet:
    """The lifecycle entry points a package script implements."""
    package: str
    script: str = ""
    defined: FrozenSet[str] = frozenset()

    def implements(self, hook: str) -> bool:
        return hook in self.defined


@dataclass(frozen=True)
class HookOutcome:
    """Result of a single hook invocation."""
    package: str
    hook: str
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    implemented: bool = True

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'package': self.package,
            'hook': self.hook,
            'exit_code': self.exit_code,
            'implemented': self.implemented,
        }
