"""
Handles the 'init' command: create the root layout, register the
configured default repositories and sync everything.
"""

import click

from ..cli_utils import standard_command, add_common_options, get_manager
from ..domain.command import Command


@click.command(name='init')
@add_common_options('quiet', 'pretty', 'format')
@standard_command
def init_handler(**kwargs):
    """Initialize the shellpm root and sync all repositories.

    Safe to re-run: already registered repositories are kept and
    synced again (fast-forward only).

    Examples:

    \b
        shellpm init
        shellpm --root /tmp/shellpm init --pretty
    """
    return get_manager().execute(Command('init'))
