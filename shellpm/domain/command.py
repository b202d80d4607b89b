"""
Parsed command value object.

The CLI glue builds a Command and hands it to the package manager;
the core holds no process-wide command flags.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

BATCH_COMMANDS = ('install', 'update', 'remove', 'enable', 'disable')
COMMANDS = ('init', 'list', 'search') + BATCH_COMMANDS


@dataclass(frozen=True)
class Command:
    """One resolved command with its already-validated arguments."""
    name: str
    tokens: Tuple[str, ...] = ()
    force: bool = False
    pattern: Optional[str] = None
    available: bool = False

    def __post_init__(self):
        if self.name not in COMMANDS:
            raise ValueError(f"Unknown command: {self.name}")
        if self.name == 'search' and not self.pattern:
            raise ValueError("search requires a pattern")
