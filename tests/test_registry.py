"""Tests for the repository registry and the package state store."""

import json

import pytest

from shellpm.domain import PackageRecord
from shellpm.errors import (
    DuplicateRepository,
    InvalidName,
    RepositoryInUse,
    RepositoryNotFound,
)
from shellpm.services import PackageStateStore, RepositoryRegistry


@pytest.fixture
def state(root):
    return PackageStateStore(root)


@pytest.fixture
def registry(root, state):
    return RepositoryRegistry(root, state)


class TestStateStore:
    def test_put_get_delete(self, state):
        record = PackageRecord.create("core", "git", "abc123")
        state.put(record)

        assert state.get("core", "git") == record
        assert state.get("core", "missing") is None
        assert state.delete("core", "git")
        assert not state.delete("core", "git")

    def test_survives_reopen(self, root, state):
        state.put(PackageRecord.create("core", "git", "abc123"))
        reopened = PackageStateStore(root)
        assert reopened.get("core", "git").commit == "abc123"
        assert json.loads((root / "state.json").read_text())["core/git"]["enabled"] is True

    def test_list_order_and_enabled(self, state):
        state.put(PackageRecord.create("zsh", "prompt", "1"))
        state.put(PackageRecord.create("core", "git", "2").with_enabled(False))
        state.put(PackageRecord.create("core", "fzf", "3"))

        assert [r.key for r in state.list_all()] == ["core/fzf", "core/git", "zsh/prompt"]
        assert [r.key for r in state.list_enabled()] == ["core/fzf", "zsh/prompt"]
        assert [r.key for r in state.for_repository("core")] == ["core/fzf", "core/git"]

    def test_mark_orphaned(self, state):
        state.put(PackageRecord.create("core", "git", "1"))
        state.put(PackageRecord.create("other", "fzf", "2"))

        orphaned = state.mark_orphaned("core")

        assert [r.key for r in orphaned] == ["core/git"]
        assert state.get("core", "git").orphaned
        assert not state.get("other", "fzf").orphaned


class TestRegistry:
    def test_add_and_resolve(self, registry, root):
        repo = registry.add("core", "https://example.com/core.git", branch="main")

        assert repo.path == root / "repos" / "core"
        assert registry.resolve("core") == repo
        assert [r.name for r in registry.list()] == ["core"]
        assert not registry.is_synced(repo)

    def test_list_sorted(self, registry):
        registry.add("zeta", "u1")
        registry.add("alpha", "u2")
        assert [r.name for r in registry.list()] == ["alpha", "zeta"]

    def test_duplicate(self, registry):
        registry.add("core", "u")
        with pytest.raises(DuplicateRepository):
            registry.add("core", "other")

    @pytest.mark.parametrize("name", ["", "a/b", "-x", ".git"])
    def test_invalid_name(self, registry, name):
        with pytest.raises(InvalidName):
            registry.add(name, "u")

    def test_missing_url(self, registry):
        with pytest.raises(InvalidName):
            registry.add("core", "")

    def test_resolve_unknown(self, registry):
        with pytest.raises(RepositoryNotFound):
            registry.resolve("nope")

    def test_remove_unused(self, registry):
        repo = registry.add("core", "u")
        repo.path.mkdir(parents=True)
        (repo.path / "file").write_text("x")

        removed, orphaned = registry.remove("core")

        assert removed.name == "core"
        assert orphaned == []
        assert registry.get("core") is None
        assert not repo.path.exists()

    def test_remove_in_use_requires_force(self, registry, state):
        registry.add("core", "u")
        state.put(PackageRecord.create("core", "git", "1"))

        with pytest.raises(RepositoryInUse) as exc_info:
            registry.remove("core")

        assert exc_info.value.records[0].key == "core/git"
        assert registry.get("core") is not None
        assert not state.get("core", "git").orphaned

    def test_forced_remove_orphans_records(self, registry, state):
        registry.add("core", "u")
        state.put(PackageRecord.create("core", "git", "1"))

        _, orphaned = registry.remove("core", force=True)

        assert [r.key for r in orphaned] == ["core/git"]
        assert state.get("core", "git").orphaned
        assert registry.get("core") is None

    def test_disabled_records_do_not_block_removal(self, registry, state):
        registry.add("core", "u")
        state.put(PackageRecord.create("core", "git", "1").with_enabled(False))

        _, orphaned = registry.remove("core")

        assert [r.key for r in orphaned] == ["core/git"]
