# model.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from .queue import Queue


PassCallback = Callable[..., None]
FailCallback = Callable[..., None]
TestFn = Callable[[PassCallback, FailCallback], Optional[Awaitable[Any]]]


@dataclass(frozen=True)
class Results:
    """Counts produced by one run of a queue."""
    passed: int = 0
    failed: int = 0
    elapsed: float = 0.0

    @property
    def total(self) -> int:
        return self.passed + self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0


@dataclass(frozen=True)
class LeafTest:
    """A test function reporting through pass_/fail callbacks."""
    fn: TestFn


@dataclass(frozen=True)
class SubQueue:
    """A queue run as a single entry of its parent."""
    queue: "Queue"


Runnable = Union[LeafTest, SubQueue]


@dataclass(frozen=True)
class Entry:
    """
    One queued unit of work.

    `name` may be None; it is only used as a label in events.
    """
    name: str | None
    runnable: Runnable
