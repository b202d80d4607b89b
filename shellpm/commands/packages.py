"""
Handles the package lifecycle batch commands: install, update, remove,
enable and disable.

Every TOKEN is processed in command-line order and reported on its own
JSONL line. A failing target does not stop the others; the exit code is
0 when nothing failed, 71 when some targets failed, 1 when all did.
"""

import click

from ..cli_utils import standard_command, add_common_options, get_manager
from ..domain.command import Command


@click.command(name='install')
@click.argument('tokens', nargs=-1, required=True)
@add_common_options('quiet', 'pretty', 'format')
@standard_command
def install_handler(tokens, **kwargs):
    """Install packages.

    TOKENS are package names, optionally qualified as REPO/NAME when
    the name exists in more than one repository.

    Examples:

    \b
        shellpm install fzf
        shellpm install core/git prompt
    """
    return get_manager().execute(Command('install', tokens=tokens))


@click.command(name='update')
@click.argument('tokens', nargs=-1)
@add_common_options('quiet', 'pretty', 'format')
@standard_command
def update_handler(tokens, **kwargs):
    """Update installed packages (all of them when no TOKENS are given).

    The package's repository is fast-forwarded and its update hook runs
    when the commit changed.

    Examples:

    \b
        shellpm update
        shellpm update core/git
    """
    return get_manager().execute(Command('update', tokens=tokens))


@click.command(name='remove')
@click.argument('tokens', nargs=-1, required=True)
@add_common_options('quiet', 'pretty', 'format', 'force')
@standard_command
def remove_handler(tokens, force, **kwargs):
    """Remove installed packages.

    The package's remove hook runs first; if it fails the package stays
    installed unless --force is given.

    Examples:

    \b
        shellpm remove fzf
        shellpm remove --force core/broken
    """
    return get_manager().execute(Command('remove', tokens=tokens, force=force))


@click.command(name='enable')
@click.argument('tokens', nargs=-1, required=True)
@add_common_options('quiet', 'pretty', 'format')
@standard_command
def enable_handler(tokens, **kwargs):
    """Enable installed packages so `shellpm load` sources them."""
    return get_manager().execute(Command('enable', tokens=tokens))


@click.command(name='disable')
@click.argument('tokens', nargs=-1, required=True)
@add_common_options('quiet', 'pretty', 'format')
@standard_command
def disable_handler(tokens, **kwargs):
    """Disable installed packages without removing them."""
    return get_manager().execute(Command('disable', tokens=tokens))
