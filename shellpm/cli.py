#!/usr/bin/env python3

import json
import sys
import click

from shellpm import __version__
from shellpm.config import configure_logging, load_config
from shellpm.exit_codes import CommandError

from shellpm.commands.init import init_handler
from shellpm.commands.list import list_handler, search_handler
from shellpm.commands.packages import (
    install_handler, update_handler, remove_handler,
    enable_handler, disable_handler,
)
from shellpm.commands.load import LOAD_FAILED, load_handler
from shellpm.commands.repo import repo_cmd


@click.group()
@click.version_option(version=__version__)
@click.option('--root', type=click.Path(file_okay=False),
              help='Root directory for repositories and state (default: ~/.shellpm)')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Configuration file (default: SHELLPM_CONFIG or ~/.shellpm/config.*)')
@click.option('-v', '--verbose', is_flag=True, help='Log debug output to stderr')
@click.pass_context
def cli(ctx, root, config_path, verbose):
    """shellpm - Package manager for your interactive shell environment.

    Packages are directories in git repositories. Each may ship a
    package.sh defining install, update, remove and load functions.
    Put `eval "$(shellpm load)"` in your shell rc to source the enabled ones.
    """
    try:
        config = load_config(config_path)
        configure_logging(config, verbose=verbose)
    except CommandError as e:
        error = json.dumps({"error": str(e), "type": type(e).__name__, "exit_code": e.exit_code})
        if ctx.invoked_subcommand == 'load':
            # stdout of load is evaluated by the shell
            click.echo(error, err=True)
            click.echo(LOAD_FAILED)
        else:
            click.echo(error)
        sys.exit(e.exit_code)

    ctx.ensure_object(dict)
    ctx.obj['config'] = config
    ctx.obj['root'] = root


# Package lifecycle
cli.add_command(init_handler, name='init')
cli.add_command(list_handler, name='list')
cli.add_command(search_handler, name='search')
cli.add_command(install_handler, name='install')
cli.add_command(update_handler, name='update')
cli.add_command(remove_handler, name='remove')
cli.add_command(enable_handler, name='enable')
cli.add_command(disable_handler, name='disable')
cli.add_command(load_handler, name='load')

# Command groups
cli.add_command(repo_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
