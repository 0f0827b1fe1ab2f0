"""Typer application and CLI entry point for whatcache.

Registers the ``fetch``, ``cache``, and ``config`` sub-commands.  The
:func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It maps :class:`~whatcache.exceptions.WhatCacheError`
to exit codes and writes a crash log for anything unexpected.

See Also:
    :mod:`whatcache.config`: configuration resolution.
    :mod:`whatcache.output`: output formatting set up in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from whatcache import __version__
from whatcache.commands.cache import cache_app
from whatcache.commands.config import config_app
from whatcache.commands.fetch import fetch_command
from whatcache.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="whatcache",
    help="Query a Gazelle tracker's JSON API through a local response cache.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("fetch")(fetch_command)
app.add_typer(cache_app, name="cache", help="Inspect and prune the response store.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"whatcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Tracker root URL, e.g. https://tracker.example/."
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Directory of the response store."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print payloads as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print payloads as TSV."),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print payloads and errors."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show cache hits, misses, and HTTP retries."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Set up output and logging, and share global options with sub-commands."""
    from whatcache.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)

    if verbose:
        # Library modules log under the "whatcache" hierarchy.
        package_logger = logging.getLogger("whatcache")
        package_logger.setLevel(logging.DEBUG)
        package_logger.handlers = [output.log_handler()]

    ctx.obj = {
        "base_url": base_url,
        "cache_dir": cache_dir,
        "format": None if fmt == OutputFormat.AUTO else fmt.value,
        "force": force,
    }


def _cancel(*_: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(130)


def _setup_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _cancel)


def _write_crash_log() -> str:
    """Save the active traceback to ``<data dir>/crash-<timestamp>.log``."""
    from whatcache.config import get_data_dir

    log_path = get_data_dir() / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return str(log_path)


def main() -> None:
    """Console-script entry point.

    A :class:`~whatcache.exceptions.WhatCacheError` prints its message and
    exits with the error's ``exit_code``.  Anything else is a bug: the
    traceback goes to a crash log and the exit code is 1.
    """
    from whatcache.exceptions import WhatCacheError
    from whatcache.output import error

    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        _cancel()
    except WhatCacheError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
