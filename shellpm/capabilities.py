"""
Capability bundle injected into every hook execution scope.

Hooks get a fixed set of helper shell functions and environment
variables, so package authors can rely on them without sourcing
anything themselves. The bundle is opaque to the core: callers can
replace it wholesale by passing their own Capabilities.
"""

import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

DEFAULT_PRELUDE = r'''
shellpm_log() { printf '%s\n' "shellpm[${SHELLPM_PACKAGE:-}]: $*" >&2; }
shellpm_warn() { printf '%s\n' "shellpm[${SHELLPM_PACKAGE:-}] warning: $*" >&2; }
shellpm_os() { printf '%s\n' "${SHELLPM_OS}"; }
shellpm_has() { command -v "$1" >/dev/null 2>&1; }
shellpm_path() {
    case "$1" in
        /*) printf '%s\n' "$1" ;;
        "~"|"~/"*) printf '%s\n' "${HOME}${1#\~}" ;;
        *) printf '%s\n' "${SHELLPM_PACKAGE_PATH:-$PWD}/$1" ;;
    esac
}
shellpm_prompt() {
    # shellpm_prompt "question" [default]; non-interactive runs get the default
    local answer=""
    if [ -t 0 ]; then
        printf '%s ' "$1" >&2
        read -r answer
    fi
    printf '%s\n' "${answer:-${2:-}}"
}
'''


def detect_os() -> str:
    """Short OS identifier exposed to hooks as SHELLPM_OS."""
    system = platform.system().lower()
    if system == 'darwin':
        return 'macos'
    if system.startswith(('cygwin', 'msys', 'mingw')):
        return 'windows'
    return system or 'unknown'


@dataclass(frozen=True)
class Capabilities:
    """Environment variables and helper functions given to every hook."""
    root: Path
    os_name: str = field(default_factory=detect_os)
    prelude: str = DEFAULT_PRELUDE
    extra_env: Dict[str, str] = field(default_factory=dict)

    def environment(self) -> Dict[str, str]:
        env = {
            'SHELLPM_ROOT': str(self.root),
            'SHELLPM_OS': self.os_name,
        }
        env.update(self.extra_env)
        return env
