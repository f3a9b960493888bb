"""
Shared pytest fixtures for testqueue tests.

This module provides:
- EventRecorder: captures every event a queue emits, in order
- leaf test factories that pass, fail or raise and log that they ran
"""

import asyncio
from functools import partial
from typing import Any, List, Tuple

import pytest

from testqueue.events import EVENTS


class EventRecorder:
    """Records (event, args) tuples emitted by a queue."""

    def __init__(self, queue):
        self.events: List[Tuple[str, tuple]] = []
        for name in EVENTS:
            queue.subscribe(name, partial(self._record, name))

    def _record(self, name: str, *args: Any) -> None:
        self.events.append((name, args))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> List[tuple]:
        return [args for event, args in self.events if event == name]


@pytest.fixture
def record():
    """Attach an EventRecorder to a queue: `rec = record(queue)`."""
    return EventRecorder


@pytest.fixture
def ran():
    """Names of leaf tests in the order they were executed."""
    return []


@pytest.fixture
def passing(ran):
    def make(label: str, value: Any = None):
        def fn(pass_, fail):
            ran.append(label)
            pass_(value)
        return fn
    return make


@pytest.fixture
def failing(ran):
    def make(label: str, error: Any = None):
        def fn(pass_, fail):
            ran.append(label)
            fail(error if error is not None else AssertionError(label))
        return fn
    return make


@pytest.fixture
def async_passing(ran):
    def make(label: str, value: Any = None, delay: float = 0.001):
        async def fn(pass_, fail):
            ran.append(label)
            await asyncio.sleep(delay)
            pass_(value)
        return fn
    return make
