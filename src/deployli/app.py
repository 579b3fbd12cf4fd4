"""Typer application and CLI entry point for deployli.

deployli's command tree is not known until plugins are loaded, so the Typer
app declares a single catch-all command: every token (including ``--help``)
is handed to :class:`~deployli.framework.Framework`, which parses it, loads
plugins, and dispatches the lifecycle on an ``asyncio`` event loop.

This module is the only place that turns errors into exit codes:

* :class:`~deployli.exceptions.DeployliError` -- message on stderr, exit with
  the error's ``exit_code``. A :class:`~deployli.exceptions.UsageError` is
  followed by the help of the deepest command that resolved.
* Anything else -- crash log under the data directory, exit 1.
* Ctrl-C -- exit 130 at once, even while a provider call is in flight.

A command that completes without any plugin hook running prints a warning.

Environment:
    DEPLOYLI_DEBUG: Enable ``DEBUG`` logging and tracebacks for handled errors.
    DEPLOYLI_OUTPUT: Force ``json``, ``plain`` or ``rich`` output.

See Also:
    :mod:`deployli.config`: Service and global configuration.
    :mod:`deployli.output`: Output formatting initialised in :func:`run`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from deployli.exceptions import DeployliError, UsageError
from deployli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from deployli.framework import Framework
from deployli.output import OutputFormat, OutputManager, error, set_output, warning

app = typer.Typer(
    name="deployli",
    help="Deploy infrastructure-as-code services through lifecycle plugins.",
    add_completion=False,
)


def _debug_enabled() -> bool:
    return bool(os.environ.get("DEPLOYLI_DEBUG"))


def _configure_logging() -> None:
    """Route library logging to stderr; verbose only with ``DEPLOYLI_DEBUG``."""
    logging.basicConfig(
        level=logging.DEBUG if _debug_enabled() else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _output_format() -> OutputFormat:
    value = os.environ.get("DEPLOYLI_OUTPUT", "").lower()
    try:
        return OutputFormat(value) if value else OutputFormat.AUTO
    except ValueError:
        return OutputFormat.AUTO


@app.command(
    context_settings={
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "help_option_names": [],
    }
)
def run(ctx: typer.Context) -> None:
    """Run a deployli command. Use 'deployli help' to list commands."""
    _configure_logging()
    set_output(OutputManager(format=_output_format()))

    framework = Framework(list(ctx.args))
    try:
        context = asyncio.run(framework.run())
    except UsageError as exc:
        error(str(exc))
        if exc.command_path:
            framework.cli.display_command_help(exc.command_path)
        else:
            framework.cli.display_general_help()
        raise typer.Exit(exc.exit_code)
    except DeployliError as exc:
        if _debug_enabled():
            traceback.print_exception(exc, file=sys.stderr)
        error(str(exc))
        raise typer.Exit(exc.exit_code)

    if context is not None and not context.hooks_run:
        command = " ".join(context.command_path)
        warning(f"No plugin hooks ran for '{command}'; nothing was done.")


def _handle_interrupt(signum: int, frame: Any) -> None:  # noqa: ANN401
    """Exit 130 immediately, without waiting for in-flight provider calls.

    Provider calls run on worker threads that cannot be cancelled, and
    ``asyncio.run`` would join them before letting ``SystemExit`` through.
    """
    sys.stderr.write("\nCancelled.\n")
    sys.stderr.flush()
    sys.stdout.flush()
    os._exit(EXIT_INTERRUPTED)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""
    signal.signal(signal.SIGINT, _handle_interrupt)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from deployli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(exc)))
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``deployli`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
