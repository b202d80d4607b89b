"""
Shared fixtures: real git upstreams built in temporary directories.

An upstream is a bare repository plus the scratch working copy used to
push commits into it. shellpm clones the bare repository like any other
remote.
"""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from shellpm.capabilities import Capabilities
from shellpm.config import get_default_config
from shellpm.services import PackageManager

requires_git = pytest.mark.skipif(shutil.which('git') is None, reason="git is not installed")
requires_bash = pytest.mark.skipif(shutil.which('bash') is None, reason="bash is not installed")

GIT_IDENTITY = {
    'GIT_AUTHOR_NAME': 'shellpm tests',
    'GIT_AUTHOR_EMAIL': 'tests@shellpm.invalid',
    'GIT_COMMITTER_NAME': 'shellpm tests',
    'GIT_COMMITTER_EMAIL': 'tests@shellpm.invalid',
    'GIT_CONFIG_NOSYSTEM': '1',
}


def git(*args, cwd=None) -> str:
    env = dict(os.environ)
    env.update(GIT_IDENTITY)
    result = subprocess.run(
        ['git', '-c', 'commit.gpgsign=false', '-c', 'init.defaultBranch=main'] + list(args),
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


class Upstream:
    """A bare remote with a scratch clone for authoring commits."""

    def __init__(self, base: Path, name: str):
        self.name = name
        self.work = base / f"{name}-work"
        self.bare = base / f"{name}.git"

        self.work.mkdir(parents=True)
        git('init', '--quiet', cwd=self.work)
        git('symbolic-ref', 'HEAD', 'refs/heads/main', cwd=self.work)
        (self.work / 'README').write_text(f"{name} packages\n")
        git('add', '-A', cwd=self.work)
        git('commit', '--quiet', '-m', 'initial', cwd=self.work)
        git('clone', '--quiet', '--bare', str(self.work), str(self.bare))
        git('remote', 'add', 'origin', str(self.bare), cwd=self.work)

    @property
    def url(self) -> str:
        return str(self.bare)

    def add_package(self, name: str, script: str = None, files=None) -> Path:
        """Create or overwrite a package directory; call commit() to publish."""
        path = self.work / name
        path.mkdir(exist_ok=True)
        if script is not None:
            (path / 'package.sh').write_text(script)
        for filename, content in (files or {}).items():
            (path / filename).write_text(content)
        if script is None and not files:
            (path / 'aliases.sh').write_text(f"# {name}\n")
        return path

    def remove_package(self, name: str) -> None:
        shutil.rmtree(self.work / name)

    def commit(self, message: str = 'update') -> str:
        git('add', '-A', cwd=self.work)
        git('commit', '--quiet', '-m', message, cwd=self.work)
        git('push', '--quiet', 'origin', 'main', cwd=self.work)
        return git('rev-parse', 'HEAD', cwd=self.work)

    @property
    def head(self) -> str:
        return git('rev-parse', 'HEAD', cwd=self.work)


@pytest.fixture
def make_upstream(tmp_path):
    """Factory: make_upstream("core") -> Upstream."""
    base = tmp_path / 'upstreams'

    def factory(name: str) -> Upstream:
        return Upstream(base, name)

    return factory


@pytest.fixture
def root(tmp_path) -> Path:
    return tmp_path / 'shellpm-root'


@pytest.fixture
def config():
    return get_default_config()


@pytest.fixture
def manager(root, config) -> PackageManager:
    return PackageManager.from_config(
        config,
        root=root,
        capabilities=Capabilities(root=root, os_name='linux'),
    )


def hook_script(**hooks) -> str:
    """Build a package.sh from hook name -> body."""
    lines = []
    for name, body in hooks.items():
        lines.append(f"{name}() {{\n    {body}\n}}")
    return "\n\n".join(lines) + "\n"
