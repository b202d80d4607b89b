"""
Handles the 'list' and 'search' commands.

Both are read-only: they look at the last-synced working copies and the
state store, and never sync.
"""

import click

from ..cli_utils import standard_command, add_common_options, get_manager
from ..domain.command import Command
from ..render import render_installed_table, render_packages_table


@click.command(name='list')
@click.option('-a', '--available', is_flag=True,
              help='List packages available in synced repositories instead of installed ones')
@add_common_options('quiet', 'pretty', 'format', 'fields')
@standard_command
def list_handler(available, pretty, **kwargs):
    """List installed packages.

    Each record carries a status: ok, orphaned (its repository was
    removed) or dangling (its files are gone from the working copy).

    Examples:

    \b
        shellpm list
        shellpm list --available --pretty
        shellpm list -f csv --fields repository,name,commit
    """
    results = get_manager().execute(Command('list', available=available))
    if not pretty:
        return results
    if available:
        render_packages_table(results, title="Available Packages")
    else:
        render_installed_table(results)
    return None


@click.command(name='search')
@click.argument('pattern')
@add_common_options('quiet', 'pretty', 'format', 'fields')
@standard_command
def search_handler(pattern, pretty, **kwargs):
    """Search available packages by name.

    PATTERN is a case-insensitive substring, or a glob when it contains
    *, ? or [.

    Examples:

    \b
        shellpm search git
        shellpm search 'prompt-*'
    """
    results = get_manager().execute(Command('search', pattern=pattern))
    if pretty:
        render_packages_table(results, title=f"Packages matching '{pattern}'")
        return None
    return results
