"""
Git client infrastructure for shellpm.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic
"""

import os
import subprocess
from dataclasses import dataclass
from typing import Optional, List
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitResult:
    """Result of one git invocation."""
    output: str = ""
    error: str = ""
    code: int = 0

    @property
    def ok(self) -> bool:
        return self.code == 0

    @property
    def message(self) -> str:
        """Most useful line to show a user when the command failed."""
        text = (self.error or self.output).strip()
        return text.splitlines()[-1] if text else f"git exited with {self.code}"


class GitClient:
    """
    Abstraction over git commands.

    Example:
        client = GitClient()
        result = client.clone("https://example.com/pkgs.git", "/tmp/pkgs")
        if result.ok:
            print(client.head("/tmp/pkgs"))
    """

    def __init__(self, timeout: Optional[float] = None, executable: str = "git"):
        """
        Initialize GitClient.

        Args:
            timeout: Command timeout in seconds (default: none, left to git)
            executable: git binary to run
        """
        self.timeout = timeout
        self.executable = executable

    def _env(self) -> dict:
        env = dict(os.environ)
        # Fail instead of blocking on a credential prompt
        env.setdefault('GIT_TERMINAL_PROMPT', '0')
        return env

    def _run(self, args: List[str], cwd: Optional[str] = None) -> GitResult:
        """
        Run a git command.

        Args:
            args: Arguments after the git executable
            cwd: Working directory

        Returns:
            GitResult with stripped stdout/stderr and the exit code
        """
        cmd = [self.executable] + list(args)
        logger.debug(f"Running {' '.join(cmd)} in {cwd or os.getcwd()}")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._env(),
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Git command timed out: {' '.join(cmd)}")
            return GitResult(error=f"timed out after {self.timeout}s", code=-1)
        except OSError as e:
            logger.error(f"Git command failed: {' '.join(cmd)} - {e}")
            return GitResult(error=str(e), code=-1)

        return GitResult(
            output=(result.stdout or "").strip(),
            error=(result.stderr or "").strip(),
            code=result.returncode,
        )

    def is_git_repo(self, path) -> bool:
        """Check if path is the top of a git working copy."""
        return (Path(path) / ".git").exists()

    def clone(self, url: str, path, branch: Optional[str] = None) -> GitResult:
        """Clone url into path (the parent directory must exist)."""
        args = ["clone", "--quiet"]
        if branch:
            args += ["--branch", branch]
        args += ["--", url, str(path)]
        return self._run(args, cwd=str(Path(path).parent))

    def fetch(self, path, remote: str = "origin") -> GitResult:
        """Fetch from remote without touching the working copy."""
        return self._run(["fetch", "--quiet", remote], cwd=str(path))

    def head(self, path) -> Optional[str]:
        """Full commit hash of HEAD."""
        result = self._run(["rev-parse", "HEAD"], cwd=str(path))
        return result.output if result.ok and result.output else None

    def upstream(self, path) -> Optional[str]:
        """Name of the upstream tracking branch, e.g. ``origin/main``."""
        result = self._run(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}"], cwd=str(path))
        return result.output if result.ok and result.output else None

    def upstream_commit(self, path) -> Optional[str]:
        """Commit hash the upstream tracking branch points at."""
        result = self._run(["rev-parse", "@{upstream}"], cwd=str(path))
        return result.output if result.ok and result.output else None

    def is_ancestor(self, path, ancestor: str, descendant: str) -> bool:
        """True if ancestor is reachable from descendant."""
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant], cwd=str(path))
        return result.code == 0

    def merge_ff_only(self, path, ref: str) -> GitResult:
        """Fast-forward the current branch to ref; refuses anything else."""
        return self._run(["merge", "--ff-only", "--quiet", ref], cwd=str(path))

    def has_uncommitted_changes(self, path) -> bool:
        """Check for modified or staged tracked files."""
        result = self._run(["status", "--porcelain", "--untracked-files=no"], cwd=str(path))
        return bool(result.ok and result.output)

    def current_branch(self, path) -> Optional[str]:
        """Get current branch name."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=str(path))
        return result.output if result.ok and result.output else None

    def remote_url(self, path, remote: str = "origin") -> Optional[str]:
        """Get remote URL, or None if the remote is not configured."""
        result = self._run(["config", "--get", f"remote.{remote}.url"], cwd=str(path))
        return result.output if result.ok and result.output else None
