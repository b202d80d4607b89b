"""
Handles the 'load' command, which prints shell code for the interactive
shell to evaluate.

Unlike the other commands, stdout here is fed to `eval`, so errors go to
the log on stderr and stdout only ever carries shell code or a comment.
"""

import logging
import sys

import click

from ..cli_utils import get_manager
from ..exit_codes import CommandError, get_exit_code_for_exception

logger = logging.getLogger(__name__)

LOAD_FAILED = "# shellpm load failed, see stderr"


@click.command(name='load')
def load_handler():
    """Print shell code that sources every enabled package.

    Add this to ~/.bashrc or ~/.zshrc:

    \b
        eval "$(shellpm load)"
    """
    try:
        script = get_manager().load_script()
    except (CommandError, OSError, ValueError) as e:
        logger.error(f"load failed: {e}")
        click.echo(LOAD_FAILED)
        sys.exit(get_exit_code_for_exception(e))

    click.echo(script, nl=False)
