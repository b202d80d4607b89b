"""
Repository registry commands.

Repositories are git remotes whose top-level directories are packages.
Working copies live under <root>/repos/<name>.
"""

import click

from ..cli_utils import standard_command, add_common_options, emit_records, get_manager
from ..errors import SyncError
from ..format_utils import get_format_from_env
from ..render import render_table


@click.group("repo")
def repo_cmd():
    """Manage package repositories."""
    pass


@repo_cmd.command("add")
@click.argument("name")
@click.argument("url")
@click.option("-b", "--branch", help="Branch to track (default: the remote's HEAD)")
@click.option("--sync/--no-sync", "sync_now", default=False,
              help="Clone the repository right away")
@add_common_options('quiet', 'format')
@standard_command
def repo_add(name, url, branch, sync_now, **kwargs):
    """Register a repository.

    NAME must start with a letter or digit and contain only letters,
    digits, '.', '_' and '-'.

    Examples:

    \b
        shellpm repo add core https://github.com/me/shell-packages.git
        shellpm repo add work git@example.com:team/dotfiles.git --branch main --sync
    """
    manager = get_manager()
    repo = manager.add_repository(name, url, branch=branch)
    result = repo.to_dict()
    if sync_now:
        try:
            result['sync'] = manager.sync_repository(repo.name).to_dict()
        except SyncError:
            # the registration stands; emit it ahead of the error record
            if not kwargs.get('quiet'):
                emit_records([result], kwargs.get('format') or get_format_from_env('jsonl'))
            raise
    return result


@repo_cmd.command("list")
@add_common_options('quiet', 'pretty', 'format', 'fields')
@standard_command
def repo_list(pretty, **kwargs):
    """List registered repositories."""
    registry = get_manager().registry
    results = [registry.describe(repo) for repo in registry.list()]

    if pretty:
        render_table(
            ["Name", "URL", "Branch", "Checked out", "Synced"],
            [[r['name'], r['url'], r.get('branch') or '', r['checked_out'] or '', "yes" if r['synced'] else "no"]
             for r in results],
            title="Repositories",
        )
        return None
    return results


@repo_cmd.command("remove")
@click.argument("name")
@add_common_options('quiet', 'format', 'force')
@standard_command
def repo_remove(name, force, **kwargs):
    """Unregister a repository and delete its working copy.

    Refuses while enabled packages come from the repository unless
    --force is given. Installed packages from it are kept as orphaned
    records; remove them with `shellpm remove`.
    """
    repo, orphaned = get_manager().remove_repository(name, force=force)
    result = repo.to_dict()
    result['orphaned'] = [record.key for record in orphaned]
    return result


@repo_cmd.command("sync")
@click.argument("names", nargs=-1)
@add_common_options('quiet', 'pretty', 'format')
@standard_command
def repo_sync(names, **kwargs):
    """Fetch and fast-forward repositories (all when no NAMES are given).

    Only working copies are touched; run `shellpm update` to run the
    update hooks of installed packages.
    """
    return get_manager().sync_repositories(list(names) or None)
