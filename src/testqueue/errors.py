# errors.py
from __future__ import annotations

from dataclasses import dataclass

from .model import Results


class QueueError(Exception):
    """Base exception for test queue errors."""
    pass


@dataclass(eq=False)
class QueueFailed(QueueError):
    """
    Raised by Queue.run() when the run ends with failures.

    `teardown_error` is set when the teardown action raised; in that case
    the run fails even if every test passed.
    """
    results: Results
    teardown_error: BaseException | None = None

    def __str__(self) -> str:
        text = f"{self.results.failed} of {self.results.total} tests failed"
        if self.teardown_error is not None:
            text += f" (teardown failed: {self.teardown_error!r})"
        return text


@dataclass(eq=False)
class SetupError(QueueError):
    """The setup action raised; no test was run."""
    cause: BaseException

    def __str__(self) -> str:
        return f"setup failed: {self.cause!r}"


class QueueBusyError(QueueError, RuntimeError):
    """run() was called on a queue that is already running."""
    pass


@dataclass(eq=False)
class LeafTimeoutError(QueueError):
    """A leaf test did not call pass_ or fail in time."""
    name: str | None
    timeout: float

    def __str__(self) -> str:
        return f"test {self.name!r} did not finish within {self.timeout}s"
