"""
Hook executor for shellpm.

A package's lifecycle script (``package.sh`` by default) may define up
to four shell functions: install, update, remove and load. Each
invocation runs in a fresh ``bash --noprofile --norc`` process whose
environment is built from scratch: an allow-list of inherited variables,
the capability bundle, and the per-invocation SHELLPM_* variables. No
shell state leaks from one package into the next.

A script that does not define the requested function (or a package with
no script at all) is a successful no-op; no process is spawned.
"""

import logging
import os
import re
import shlex
import subprocess
import threading
from typing import Dict, Iterable, Optional

from ..capabilities import Capabilities
from ..domain.hook import HOOK_NAMES, HookOutcome, HookSet
from ..domain.repository import Package

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT = 'package.sh'

# holds user functions that share a lifecycle name while a package is sourced
SAVED_FUNCTIONS = '__shellpm_saved_functions'

# `name() {`, `name ()` or `function name`
HOOK_DEFINITION = re.compile(
    r'^[ \t]*(?:function[ \t]+(?P<keyword>{names})\b|(?P<posix>{names})[ \t]*\([ \t]*\))'.format(
        names='|'.join(HOOK_NAMES)
    ),
    re.MULTILINE,
)

RUNNER = '''
cd "$SHELLPM_PACKAGE_PATH" || exit 1
. "$SHELLPM_HOOK_SCRIPT" || exit $?
declare -F "$SHELLPM_HOOK" >/dev/null || exit 0
"$SHELLPM_HOOK"
'''


class HookExecutor:
    """
    Runs package lifecycle hooks in isolated shell processes.

    Example:
        executor = HookExecutor(Capabilities(root=Path("~/.shellpm")))
        outcome = executor.run_hook(package, "install")
        if not outcome.succeeded:
            print(outcome.stderr)
    """

    def __init__(
        self,
        capabilities: Capabilities,
        script_name: str = DEFAULT_SCRIPT,
        shell: str = "bash",
        capture_output: bool = True,
        inherit_env: Iterable[str] = ("PATH", "HOME", "USER", "LANG", "TERM"),
        timeout: Optional[float] = None,
    ):
        self.capabilities = capabilities
        self.script_name = script_name
        self.shell = shell
        self.capture_output = capture_output
        self.inherit_env = tuple(inherit_env)
        self.timeout = timeout
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, package: Package) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(package.key, threading.Lock())

    def script_path(self, package: Package):
        return package.path / self.script_name

    def hook_set(self, package: Package) -> HookSet:
        """
        Discover which lifecycle functions the package script defines.

        Detection is static, so the script is never executed to find out.
        """
        script = self.script_path(package)
        if not script.is_file():
            return HookSet(package=package.key)

        text = script.read_text(errors='replace')
        defined = frozenset(
            match.group('keyword') or match.group('posix')
            for match in HOOK_DEFINITION.finditer(text)
        )
        return HookSet(package=package.key, script=str(script), defined=defined)

    def environment(self, package: Package, hook: str, env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """The complete environment a hook process starts with."""
        result = {
            name: os.environ[name]
            for name in self.inherit_env
            if name in os.environ
        }
        result.update(self.capabilities.environment())
        result.update({
            'SHELLPM_PACKAGE': package.name,
            'SHELLPM_REPOSITORY': package.repository,
            'SHELLPM_PACKAGE_PATH': str(package.path),
            'SHELLPM_HOOK_SCRIPT': str(self.script_path(package)),
            'SHELLPM_HOOK': hook,
        })
        if env:
            result.update(env)
        return result

    def run_hook(self, package: Package, hook: str, env: Optional[Dict[str, str]] = None) -> HookOutcome:
        """
        Invoke one lifecycle function of a package.

        A non-zero exit is reported in the outcome, never raised.

        Args:
            package: Package whose script to run
            hook: One of install, update, remove, load
            env: Extra variables for this invocation

        Returns:
            HookOutcome; ``implemented`` is False for a no-op
        """
        if hook not in HOOK_NAMES:
            raise ValueError(f"Unknown hook '{hook}', expected one of {', '.join(HOOK_NAMES)}")

        hooks = self.hook_set(package)
        if not hooks.implements(hook):
            logger.debug(f"{package.key} has no {hook} hook")
            return HookOutcome(package=package.key, hook=hook, exit_code=0, implemented=False)

        with self._lock_for(package):
            return self._execute(package, hook, env)

    def _execute(self, package: Package, hook: str, env: Optional[Dict[str, str]]) -> HookOutcome:
        code = self.capabilities.prelude + RUNNER
        cmd = [self.shell, '--noprofile', '--norc', '-c', code, f"shellpm-{hook}"]
        logger.info(f"Running {hook} hook of {package.key}")

        try:
            result = subprocess.run(
                cmd,
                cwd=str(package.path),
                env=self.environment(package, hook, env),
                capture_output=self.capture_output,
                # captured runs are non-interactive; shellpm_prompt falls back to defaults
                stdin=subprocess.DEVNULL if self.capture_output else None,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"{hook} hook of {package.key} timed out after {self.timeout}s")
            return HookOutcome(package=package.key, hook=hook, exit_code=124, stderr="timed out")
        except OSError as e:
            logger.error(f"Could not start {self.shell} for {package.key}: {e}")
            return HookOutcome(package=package.key, hook=hook, exit_code=127, stderr=str(e))

        stdout = result.stdout or ""
        stderr = result.stderr or ""
        for line in stdout.splitlines():
            logger.debug(f"[{package.key}] {line}")
        if result.returncode != 0:
            logger.warning(f"{hook} hook of {package.key} exited with {result.returncode}")

        return HookOutcome(
            package=package.key,
            hook=hook,
            exit_code=result.returncode,
            stdout=stdout,
            stderr=stderr,
        )

    def load_snippet(self, package: Package) -> str:
        """
        Shell code that sources a package into the interactive shell.

        The script is sourced and its load function called if defined;
        lifecycle functions are unset afterwards so they do not linger.
        Shell functions that already carry a lifecycle name are saved
        before sourcing and restored afterwards, and are never called.
        """
        script = self.script_path(package)
        if not script.is_file():
            return f"# {package.key}: no {self.script_name}\n"

        variables = {
            'SHELLPM_PACKAGE': package.name,
            'SHELLPM_REPOSITORY': package.repository,
            'SHELLPM_PACKAGE_PATH': str(package.path),
            'SHELLPM_HOOK': 'load',
        }
        names = ' '.join(HOOK_NAMES)
        lines = [f"# {package.key}"]
        lines += [f"{name}={shlex.quote(value)}" for name, value in variables.items()]
        lines += [
            f"{SAVED_FUNCTIONS}=\"$(typeset -f {names} 2>/dev/null)\"",
            f"unset -f {names} 2>/dev/null",
            f". {shlex.quote(str(script))}",
        ]
        if self.hook_set(package).implements('load'):
            lines.append("if typeset -f load >/dev/null 2>&1; then load; fi")
        lines += [
            f"unset -f {names} 2>/dev/null",
            f"if [ -n \"${SAVED_FUNCTIONS}\" ]; then eval \"${SAVED_FUNCTIONS}\"; fi",
            f"unset {' '.join(variables)} {SAVED_FUNCTIONS}",
        ]
        return "\n".join(lines) + "\n"
