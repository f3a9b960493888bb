"""Console output formatting for test queue runs."""

from __future__ import annotations

import traceback
from typing import Any, Callable, List, Optional

import click

from ..errors import QueueFailed
from ..events import FAIL, FINISH, INFO, PASS, START
from ..model import Results

# start() with no argument marks the top-level queue
_TOP = object()


def _plural(count: int, word: str = "test") -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, color: Optional[bool] = None):
        """
        Initialize console formatter.

        Args:
            debug: If True, show stack traces for failing tests
            color: Force colour on or off; None lets click decide per stream
        """
        self.debug = debug
        self.color = color

    def _echo(self, message: str, err: bool = False, **style: Any) -> None:
        if style:
            message = click.style(message, **style)
        click.echo(message, err=err, color=self.color)

    def print_start(self, name: Optional[str] = None, depth: int = 0) -> None:
        """Print queue (or nested queue) start."""
        text = "Start"
        if depth:
            text = "#" * depth + " " + text
        self._echo(f"{text} {name or ''}".rstrip())

    def print_finish(self, name: Optional[str] = None, depth: int = 0) -> None:
        """Print queue (or nested queue) finish."""
        text = "Finish"
        if depth:
            text = "#" * depth + " " + text
        self._echo(f"{text} {name or ''}".rstrip())

    def print_pass(self, name: Optional[str]) -> None:
        self._echo(f"Pass: {name}", fg="green")

    def print_fail(self, name: Optional[str], error: Any = None) -> None:
        """
        Print a failing test.

        Exceptions get their message highlighted; the traceback is only
        shown in debug mode.
        """
        self._echo(f"Fail: {name}", err=True, fg="red")
        if isinstance(error, BaseException):
            self._echo(str(error) or type(error).__name__, err=True, bold=True, bg="red")
            if self.debug:
                tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
                self._echo(tb.rstrip(), err=True)
        elif error is not None:
            self._echo(str(error), err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._echo(message)

    def print_summary(self, results: Results) -> None:
        """Print final results summary."""
        if results.ok:
            self._echo(
                f"Success: all {_plural(results.passed)} passed ",
                fg="black",
                bg="green",
            )
        else:
            self._echo(
                f"Failure: {_plural(results.total)} ran and "
                f"{_plural(results.passed)} passed and "
                f"{_plural(results.failed)} failed ",
                err=True,
                bold=True,
                bg="red",
            )
        self._echo(f"Duration: {results.elapsed:.2f}s")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self._echo(f"\nERROR: {title}", err=True)
        self._echo(message, err=True)
        if details:
            for detail in details:
                self._echo(f"  {detail}", err=True)
        if suggestion:
            self._echo(f"\n{suggestion}", err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            self._echo(tb.rstrip(), err=True)
        else:
            self._echo(f"Error: {exc}", err=True)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._echo(f"[DEBUG] {message}", err=True)


class ConsoleReporter:
    """
    Prints a queue's events as they happen.

    Nested queues are labelled with '#' marks, one per nesting level.
    """

    def __init__(self, queue, console: Optional[Console] = None):
        self.queue = queue
        self.console = console or get_console()
        self.depth = 0
        self.teardown_error: Optional[BaseException] = None
        self._unsubscribers: List[Callable[[], None]] = [
            queue.subscribe(START, self._on_start),
            queue.subscribe(PASS, self._on_pass),
            queue.subscribe(FAIL, self._on_fail),
            queue.subscribe(FINISH, self._on_finish),
            queue.subscribe(INFO, self._on_info),
        ]

    def _on_start(self, name: Any = _TOP) -> None:
        if name is _TOP:
            self.console.print_start()
            return
        self.depth += 1
        self.console.print_start(name, depth=self.depth)

    def _on_finish(self, results: Results, name: Any = _TOP) -> None:
        if name is _TOP:
            self.console.print_finish()
            return
        self.console.print_finish(name, depth=self.depth)
        self.depth -= 1

    def _on_pass(self, name: Optional[str], value: Any = None) -> None:
        self.console.print_pass(name)

    def _on_fail(self, name: Optional[str], error: Any = None) -> None:
        self.console.print_fail(name, error)

    def _on_info(self, *args: Any) -> None:
        self.console.print_info(" ".join(str(a) for a in args))

    async def run(self) -> Results:
        """Run the queue and print a summary. Failures are returned, not raised."""
        self.depth = 0
        self.teardown_error = None
        try:
            results = await self.queue.run()
        except QueueFailed as e:
            results = e.results
            self.teardown_error = e.teardown_error
            if e.teardown_error is not None:
                self.console.print_error("Teardown failed", str(e.teardown_error))
        self.console.print_summary(results)
        return results

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []


def to_console(queue, console: Optional[Console] = None) -> ConsoleReporter:
    """Attach a console reporter to `queue`."""
    return ConsoleReporter(queue, console=console)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
