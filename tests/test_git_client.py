"""Tests for the git client, against real repositories."""

import subprocess
from unittest.mock import patch

from shellpm.infra.git_client import GitClient, GitResult

from conftest import requires_git


class TestGitResult:
    def test_message_prefers_last_error_line(self):
        result = GitResult(error="warning: x\nfatal: repository not found", code=128)
        assert not result.ok
        assert result.message == "fatal: repository not found"

    def test_message_without_output(self):
        assert GitResult(code=3).message == "git exited with 3"


class TestRunFailures:
    def test_timeout_maps_to_failed_result(self, tmp_path):
        client = GitClient(timeout=1)
        with patch('subprocess.run', side_effect=subprocess.TimeoutExpired(['git'], 1)):
            result = client.fetch(tmp_path)
        assert result.code == -1
        assert "timed out" in result.error

    def test_missing_executable(self, tmp_path):
        client = GitClient(executable="definitely-not-git-xyz")
        result = client.fetch(tmp_path)
        assert not result.ok
        assert client.head(tmp_path) is None

    def test_terminal_prompt_disabled(self, tmp_path):
        client = GitClient()
        with patch('subprocess.run') as run:
            run.return_value = subprocess.CompletedProcess([], 0, "", "")
            client.fetch(tmp_path)
        env = run.call_args.kwargs['env']
        assert env['GIT_TERMINAL_PROMPT'] == '0'


@requires_git
class TestAgainstRepositories:
    def test_clone_and_inspect(self, make_upstream, tmp_path):
        upstream = make_upstream("core")
        client = GitClient()
        dest = tmp_path / "clone"

        result = client.clone(upstream.url, dest)

        assert result.ok, result.message
        assert client.is_git_repo(dest)
        assert client.head(dest) == upstream.head
        assert client.current_branch(dest) == "main"
        assert client.upstream(dest) == "origin/main"
        assert client.upstream_commit(dest) == upstream.head
        assert client.remote_url(dest) == upstream.url
        assert not client.has_uncommitted_changes(dest)

    def test_clone_failure(self, tmp_path):
        result = GitClient().clone(str(tmp_path / "nope.git"), tmp_path / "dest")
        assert not result.ok
        assert result.message

    def test_fetch_and_fast_forward(self, make_upstream, tmp_path):
        upstream = make_upstream("core")
        client = GitClient()
        dest = tmp_path / "clone"
        client.clone(upstream.url, dest)
        before = client.head(dest)

        upstream.add_package("git")
        after = upstream.commit("add git")

        assert client.fetch(dest).ok
        assert client.is_ancestor(dest, before, after)
        assert not client.is_ancestor(dest, after, before)
        assert client.merge_ff_only(dest, "origin/main").ok
        assert client.head(dest) == after

    def test_uncommitted_changes_ignore_untracked(self, make_upstream, tmp_path):
        upstream = make_upstream("core")
        client = GitClient()
        dest = tmp_path / "clone"
        client.clone(upstream.url, dest)

        (dest / "untracked.txt").write_text("x")
        assert not client.has_uncommitted_changes(dest)

        (dest / "README").write_text("changed\n")
        assert client.has_uncommitted_changes(dest)
