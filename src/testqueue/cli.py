# cli.py
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from testqueue.errors import QueueError, SetupError
from testqueue.loader import load_directory
from testqueue.ui.console import Console, ConsoleReporter, get_console, set_console


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    envvar="TESTQUEUE_DEBUG",
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """testqueue: run test modules one at a time, in order."""
    console = Console(debug=debug)
    set_console(console)
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="[%(name)s] %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("directory", type=click.Path(path_type=Path))
@click.option(
    "--strip-number/--no-strip-number",
    default=False,
    envvar="TESTQUEUE_STRIP_NUMBER",
    show_default=True,
    help='Drop leading ordering numbers from test names ("1. login" -> "login")',
)
@click.option(
    "--stop-on-fail/--no-stop-on-fail",
    default=True,
    envvar="TESTQUEUE_STOP_ON_FAIL",
    show_default=True,
    help="Stop running tests after the first failure",
)
@click.option(
    "--timeout",
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    envvar="TESTQUEUE_TIMEOUT",
    help="Fail a test that has not reported after this many seconds",
)
@click.pass_context
def run(ctx, directory, strip_number, stop_on_fail, timeout):
    """Run every test module found in DIRECTORY."""
    console = get_console()

    try:
        queue = load_directory(
            directory,
            strip_number=strip_number,
            stop_on_fail=stop_on_fail,
            timeout=timeout,
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        console.print_error(
            "Test directory not found",
            str(e),
            suggestion="Specify a directory of test modules:\n  testqueue run tests/",
        )
        sys.exit(1)
    except Exception as e:
        console.print_error(
            "Failed to load tests",
            f"Could not load tests from {directory}",
            details=[str(e)],
        )
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)

    console.print_debug(f"Loaded {len(queue)} entries from {directory}")
    reporter = ConsoleReporter(queue, console=console)

    try:
        results = asyncio.run(reporter.run())
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except SetupError as e:
        console.print_error("Setup failed", str(e.cause))
        if ctx.obj.get("debug", False):
            console.print_exception(e.cause)
        sys.exit(1)
    except QueueError as e:
        console.print_exception(e)
        sys.exit(1)

    if results.failed > 0 or reporter.teardown_error is not None:
        sys.exit(1)


if __name__ == "__main__":
    cli()
