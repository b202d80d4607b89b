"""
End-to-end tests for the package manager.

Every test drives real git upstreams and real bash hooks; nothing in the
lifecycle is mocked.
"""

from unittest.mock import patch

import pytest

from shellpm.capabilities import Capabilities
from shellpm.domain import Command, OperationStatus
from shellpm.domain.event import ENVIRONMENT_CHANGED
from shellpm.errors import RepositoryInUse
from shellpm.services import PackageManager
from shellpm.services.package_service import DANGLING, HEALTHY, ORPHANED

from conftest import hook_script, requires_bash, requires_git

pytestmark = [requires_git, requires_bash]


@pytest.fixture
def events(manager):
    received = []
    manager.subscribe(received.append)
    return received


@pytest.fixture
def core(make_upstream, manager):
    """A registered and synced repository with a few packages."""
    upstream = make_upstream("core")
    upstream.add_package("good", hook_script(install='echo ok > "$SHELLPM_ROOT/good.installed"'))
    upstream.add_package("broken", hook_script(install='echo "cannot install" >&2; exit 1'))
    upstream.add_package("plain")
    upstream.add_package("sticky", hook_script(remove='echo "still in use" >&2; return 2'))
    upstream.add_package("tracked", hook_script(
        update='echo "$SHELLPM_PACKAGE" >> "$SHELLPM_ROOT/updates.log"',
        load='export TRACKED_LOADED=1',
    ))
    upstream.commit("packages")
    manager.add_repository("core", upstream.url)
    manager.init()
    return upstream


class TestInstall:
    def test_end_to_end_clones_unsynced_repository(self, make_upstream, manager, root):
        upstream = make_upstream("repoA")
        upstream.add_package("foo", hook_script(install='touch "$SHELLPM_ROOT/foo-hook-ran"'))
        head = upstream.commit("add foo")
        manager.add_repository("repoA", upstream.url)

        report = manager.install(["repoA/foo"])

        assert report.success
        detail = report.get("repoA/foo")
        assert detail.status == OperationStatus.SUCCESS
        assert detail.metadata == {'commit': head, 'hook_ran': True}
        assert (root / "repos" / "repoA" / "foo").is_dir()
        assert (root / "foo-hook-ran").exists()

        records = manager.state.list_all()
        assert len(records) == 1
        record = records[0]
        assert (record.repository, record.name, record.commit, record.enabled) == ("repoA", "foo", head, True)

    def test_failure_isolation(self, core, manager, root):
        report = manager.install(["broken", "good"])

        assert report.get("broken").status == OperationStatus.FAILED
        assert report.get("broken").error_kind == "HookFailure"
        assert "cannot install" in report.get("broken").error
        assert report.get("good").status == OperationStatus.SUCCESS
        assert [r.key for r in manager.state.list_all()] == ["core/good"]
        assert (root / "good.installed").exists()
        assert (report.successful, report.failed) == (1, 1)

    def test_targets_processed_in_order(self, core, manager):
        report = manager.install(["plain", "good"])
        assert [d.target for d in report.details] == ["plain", "good"]

    def test_missing_install_hook_is_success(self, core, manager):
        report = manager.install(["plain"])
        detail = report.get("plain")
        assert detail.status == OperationStatus.SUCCESS
        assert detail.metadata['hook_ran'] is False
        assert manager.state.get("core", "plain") is not None

    def test_resolution_errors_do_not_stop_the_batch(self, core, manager):
        report = manager.install(["nope", "other/thing", "bad//token", "good"])

        kinds = [d.error_kind for d in report.details]
        assert kinds == ["PackageNotFound", "RepositoryNotFound", "InvalidName", None]
        assert report.get("good").status == OperationStatus.SUCCESS

    def test_sync_error_is_isolated(self, core, manager, tmp_path):
        manager.add_repository("offline", str(tmp_path / "no-such-remote.git"))

        report = manager.install(["offline/thing", "good"])

        assert report.get("offline/thing").error_kind == "SyncError"
        assert report.get("good").status == OperationStatus.SUCCESS
        assert manager.state.get("offline", "thing") is None

    def test_package_missing_after_first_sync(self, make_upstream, manager):
        upstream = make_upstream("repoA")
        manager.add_repository("repoA", upstream.url)

        report = manager.install(["repoA/ghost"])

        assert report.get("repoA/ghost").error_kind == "PackageNotFound"
        assert manager.state.list_all() == []

    def test_already_installed_is_skipped(self, core, manager, events):
        manager.install(["good"])
        events.clear()

        report = manager.install(["good"])

        assert report.get("good").status == OperationStatus.SKIPPED
        assert report.success
        assert events == []

    def test_repository_synced_once_per_batch(self, core, manager):
        with patch.object(manager.sync, 'sync_repository', wraps=manager.sync.sync_repository) as sync:
            manager.install(["good", "plain", "core/tracked"])
        assert sync.call_count == 1

    def test_emits_environment_changed(self, core, manager, events):
        manager.install(["good", "broken"])

        assert len(events) == 1
        assert events[0].type == ENVIRONMENT_CHANGED
        assert events[0].command == "install"
        assert events[0].packages == ("core/good",)

    def test_nothing_emitted_when_everything_failed(self, core, manager, events):
        manager.install(["broken"])
        assert events == []


class TestUpdate:
    def test_updates_commit_and_runs_hook(self, core, manager, root):
        manager.install(["tracked"])
        old = manager.state.get("core", "tracked")

        core.add_package("tracked", files={"extra.sh": "# more\n"})
        head = core.commit("touch tracked")
        report = manager.update(["tracked"])

        detail = report.get("tracked")
        assert detail.status == OperationStatus.SUCCESS
        assert detail.metadata['previous_commit'] == old.commit
        assert detail.metadata['commit'] == head
        record = manager.state.get("core", "tracked")
        assert record.commit == head
        assert record.updated_at is not None
        assert record.installed_at == old.installed_at
        assert (root / "updates.log").read_text() == "tracked\n"

    def test_unchanged_is_skipped_without_hook(self, core, manager, root):
        manager.install(["tracked"])
        report = manager.update(["tracked"])
        assert report.get("tracked").status == OperationStatus.SKIPPED
        assert not (root / "updates.log").exists()

    def test_no_tokens_updates_everything(self, core, manager):
        manager.install(["good", "tracked"])
        core.add_package("extra-file-bump", files={"x": "1"})
        core.commit("bump")

        report = manager.update()

        assert sorted(d.target for d in report.details) == ["core/good", "core/tracked"]
        assert report.successful == 2

    def test_not_installed(self, core, manager):
        report = manager.update(["good"])
        assert report.get("good").error_kind == "PackageNotInstalled"

    def test_failed_update_hook_keeps_old_commit(self, core, manager):
        manager.install(["plain"])
        old_commit = manager.state.get("core", "plain").commit

        core.add_package("plain", hook_script(update="exit 5"))
        core.commit("break plain")
        report = manager.update(["plain"])

        assert report.get("plain").error_kind == "HookFailure"
        assert manager.state.get("core", "plain").commit == old_commit

    def test_package_deleted_upstream(self, core, manager):
        manager.install(["plain"])
        core.remove_package("plain")
        core.commit("drop plain")

        report = manager.update(["plain"])

        assert report.get("plain").error_kind == "PackageNotFound"
        record = manager.state.get("core", "plain")
        assert manager.record_status(record) == DANGLING
        assert [r.key for r in manager.dangling_records()] == ["core/plain"]


class TestRemove:
    def test_remove_runs_hook_and_deletes_record(self, core, manager):
        manager.install(["good"])
        report = manager.remove(["good"])
        assert report.get("good").status == OperationStatus.SUCCESS
        assert manager.state.get("core", "good") is None

    def test_failed_remove_hook_keeps_record(self, core, manager):
        manager.install(["sticky"])

        report = manager.remove(["sticky"])

        detail = report.get("sticky")
        assert detail.status == OperationStatus.FAILED
        assert detail.error_kind == "HookFailure"
        assert "still in use" in detail.error
        assert manager.state.get("core", "sticky") is not None

    def test_force_removes_despite_hook_failure(self, core, manager):
        manager.install(["sticky"])

        report = manager.remove(["sticky"], force=True)

        detail = report.get("sticky")
        assert detail.status == OperationStatus.SUCCESS
        assert detail.message.startswith("forced:")
        assert manager.state.get("core", "sticky") is None

    def test_not_installed(self, core, manager):
        report = manager.remove(["good"])
        assert report.get("good").error_kind == "PackageNotInstalled"

    def test_orphaned_record_can_be_removed(self, core, manager):
        manager.install(["sticky"])
        manager.remove_repository("core", force=True)

        report = manager.remove(["sticky"])

        assert report.get("sticky").status == OperationStatus.SUCCESS
        assert manager.state.list_all() == []


class TestRepositories:
    def test_remove_in_use_requires_force(self, core, manager, root):
        manager.install(["good"])

        with pytest.raises(RepositoryInUse):
            manager.remove_repository("core")

        assert manager.registry.get("core") is not None
        assert manager.record_status(manager.state.get("core", "good")) == HEALTHY

    def test_forced_removal_orphans_and_reports(self, core, manager, root, events):
        manager.install(["good", "plain"])
        events.clear()

        repo, orphaned = manager.remove_repository("core", force=True)

        assert [r.key for r in orphaned] == ["core/good", "core/plain"]
        assert not repo.path.exists()
        statuses = {entry['name']: entry['status'] for entry in manager.list_installed()}
        assert statuses == {"good": ORPHANED, "plain": ORPHANED}
        assert len(manager.dangling_records()) == 2
        assert events[0].command == "repo remove"
        assert (root / "good.installed").exists()

    def test_orphaned_records_are_skipped_by_update_all(self, core, manager):
        manager.install(["good"])
        manager.remove_repository("core", force=True)
        assert manager.update().total == 0

    def test_reinstall_after_repository_is_re_added(self, core, manager, root):
        manager.install(["good"])
        manager.remove_repository("core", force=True)
        (root / "good.installed").unlink()
        manager.add_repository("core", core.url)
        manager.init()

        report = manager.install(["good"])

        detail = report.get("good")
        assert detail.status == OperationStatus.SUCCESS
        assert (root / "good.installed").exists()
        record = manager.state.get("core", "good")
        assert not record.orphaned
        assert manager.record_status(record) == HEALTHY
        script = manager.load_script()
        assert "# core/good\n" in script
        assert "skipped" not in script

    def test_update_reattaches_orphaned_record(self, core, manager, root):
        manager.install(["tracked"])
        manager.remove_repository("core", force=True)
        manager.add_repository("core", core.url)
        manager.init()

        report = manager.update(["core/tracked"])

        assert report.get("core/tracked").status == OperationStatus.SUCCESS
        assert manager.record_status(manager.state.get("core", "tracked")) == HEALTHY
        assert (root / "updates.log").read_text() == "tracked\n"

    def test_sync_repositories(self, core, manager):
        report = manager.sync_repositories()
        assert report.get("core").action == "unchanged"
        assert report.get("core").status == OperationStatus.SKIPPED

        core.add_package("newpkg")
        core.commit("new")
        assert manager.sync_repositories(["core"]).get("core").action == "updated"

        assert manager.sync_repositories(["nope"]).get("nope").error_kind == "RepositoryNotFound"


class TestToggle:
    def test_disable_and_enable(self, core, manager):
        manager.install(["good", "tracked"])

        report = manager.disable(["good"])
        assert report.get("good").status == OperationStatus.SUCCESS
        assert [r.key for r in manager.state.list_enabled()] == ["core/tracked"]

        assert manager.disable(["good"]).get("good").status == OperationStatus.SKIPPED
        assert manager.enable(["good"]).get("good").status == OperationStatus.SUCCESS
        assert len(manager.state.list_enabled()) == 2

    def test_disabled_records_do_not_block_repository_removal(self, core, manager):
        manager.install(["good"])
        manager.disable(["good"])
        _, orphaned = manager.remove_repository("core")
        assert [r.key for r in orphaned] == ["core/good"]


class TestQueries:
    def test_list_available_marks_installed(self, core, manager):
        manager.install(["good"])
        available = {entry['name']: entry['installed'] for entry in manager.list_available()}
        assert available == {
            "broken": False, "good": True, "plain": False, "sticky": False, "tracked": False,
        }

    def test_search(self, core, manager):
        assert [p.key for p in manager.search("tr*")] == ["core/tracked"]

    def test_execute_dispatch(self, core, manager):
        assert manager.execute(Command("install", tokens=("good",))).successful == 1
        assert [e['name'] for e in manager.execute(Command("list"))] == ["good"]
        assert manager.execute(Command("search", pattern="stick"))[0]['name'] == "sticky"
        assert manager.execute(Command("disable", tokens=("good",))).successful == 1
        assert manager.execute(Command("remove", tokens=("good",))).successful == 1


class TestInit:
    def test_registers_default_repositories(self, make_upstream, root, config):
        upstream = make_upstream("defaults")
        upstream.add_package("starter")
        upstream.commit("starter")
        config['general']['default_repositories'] = {"defaults": upstream.url}
        manager = PackageManager.from_config(config, root=root, capabilities=Capabilities(root=root))

        report = manager.init()

        assert report.get("defaults").action == "cloned"
        assert (root / "repositories.json").exists()
        assert (root / "repos" / "defaults" / "starter").is_dir()

        again = manager.init()
        assert again.get("defaults").action == "unchanged"
        assert again.success

    def test_reports_unreachable_repository(self, manager, tmp_path):
        manager.add_repository("offline", str(tmp_path / "missing.git"))
        report = manager.init()
        assert report.get("offline").error_kind == "SyncError"


class TestLoadScript:
    def test_contains_enabled_healthy_packages(self, core, manager, root):
        manager.install(["good", "tracked", "plain"])
        manager.disable(["plain"])

        script = manager.load_script()

        assert f"export SHELLPM_ROOT={root}" in script
        assert "shellpm_log()" in script
        assert "# core/good" in script
        assert "# core/tracked" in script
        assert "core/plain" not in script

    def test_skips_unhealthy_records(self, core, manager):
        manager.install(["good"])
        manager.remove_repository("core", force=True)
        assert "# core/good: skipped (orphaned)" in manager.load_script()
