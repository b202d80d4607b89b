"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
import click
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Iterable

from .config import load_config
from .domain.event import ENVIRONMENT_CHANGED, Event
from .domain.operation import BatchReport
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError,
    PartialSuccessError, BatchFailedError,
)
from .format_utils import FORMATS, format_output, get_format_from_env
from .render import render_report
from .services.package_service import PackageManager

logger = logging.getLogger(__name__)

RELOAD_MARKER = 'reload'


def emit_records(items: Iterable[Dict[str, Any]], output_format: str, fields=None) -> None:
    for line in format_output(items, output_format, fields):
        click.echo(line)


def check_report(report: BatchReport) -> None:
    """Raise the error matching a batch that had failing targets."""
    if report.success:
        return
    if report.successful or report.skipped:
        raise PartialSuccessError(
            f"{report.command}: {report.failed} of {report.total} targets failed",
            succeeded=report.successful + report.skipped,
            failed=report.failed,
        )
    raise BatchFailedError(f"{report.command}: all {report.failed} targets failed", failed=report.failed)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean JSONL (or --format) records on stdout
    - Rich tables with --pretty for batch reports
    - --quiet suppresses data output
    - Consistent error handling and exit codes

    The wrapped command returns a BatchReport, a list of dicts, a dict,
    or None when it produced its own output.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        quiet = kwargs.get('quiet', False)
        pretty = kwargs.get('pretty', False)
        output_format = kwargs.get('format') or get_format_from_env('jsonl')
        fields_str = kwargs.get('fields')
        fields = fields_str.split(',') if fields_str else None

        try:
            result = func(*args, **kwargs)

            if isinstance(result, BatchReport):
                if pretty:
                    render_report(result)
                elif not quiet:
                    emit_records((detail.to_dict() for detail in result.details), output_format, fields)
                check_report(result)
            elif result is None or quiet:
                pass
            elif isinstance(result, dict):
                emit_records([result], output_format, fields)
            else:
                emit_records(result, output_format, fields)

            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except CommandError as e:
            logger.error(str(e))
            if not quiet and not pretty:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__,
                    "exit_code": e.exit_code
                }
                if hasattr(e, 'succeeded'):
                    error_obj['succeeded'] = e.succeeded
                    error_obj['failed'] = e.failed
                click.echo(json.dumps(error_obj, ensure_ascii=False))
            sys.exit(e.exit_code)
        except (OSError, ValueError) as e:
            logger.error(f"Command failed: {e}")
            if not quiet:
                click.echo(json.dumps({"error": str(e), "type": type(e).__name__}, ensure_ascii=False))
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


def touch_reload_marker(root: Path, event: Event) -> None:
    """
    Record that the interactive shell should re-source its packages.

    The shell integration compares the marker's mtime against the time
    it last ran ``shellpm load``.
    """
    if event.type != ENVIRONMENT_CHANGED:
        return
    marker = Path(root) / RELOAD_MARKER
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.write_text(json.dumps(event.to_dict()) + "\n")
    logger.debug(f"Touched {marker} at {datetime.now().isoformat(timespec='seconds')}")


def get_manager() -> PackageManager:
    """
    The PackageManager for the current invocation, built once from the
    root group's --config/--root options.
    """
    ctx = click.get_current_context()
    obj = ctx.ensure_object(dict)
    if obj.get('manager') is None:
        config = obj.get('config')
        if config is None:
            config = load_config()
            obj['config'] = config
        manager = PackageManager.from_config(config, root=obj.get('root'))
        manager.subscribe(lambda event: touch_reload_marker(manager.root, event))
        obj['manager'] = manager
    return obj['manager']


# Standard options that many commands share
common_options = {
    'quiet': click.option('-q', '--quiet', is_flag=True,
                          help='Suppress data output'),
    'pretty': click.option('--pretty', is_flag=True,
                           help='Render a table instead of JSONL'),
    'force': click.option('--force', is_flag=True,
                          help='Proceed even when the target is in use or its hook fails'),
    'format': click.option('-f', '--format',
                           type=click.Choice(list(FORMATS)),
                           help='Output format (default: jsonl, or from SHELLPM_FORMAT env)'),
    'fields': click.option('--fields',
                           help='Comma-separated list of fields to include (for CSV/TSV)'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('quiet', 'pretty')
        def my_command(quiet, pretty):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
