"""
Event domain object for shellpm.

The package manager emits an ``environment_changed`` event after a
command altered installed state. The shell integration consumes it to
re-source the interactive environment.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Tuple

ENVIRONMENT_CHANGED = 'environment_changed'


@dataclass(frozen=True)
class Event:
    """Something the core wants the outer layers to know about."""

    type: str
    command: str
    packages: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'command': self.command,
            'packages': list(self.packages),
            'timestamp': self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.type} after {self.command} ({', '.join(self.packages)})"
