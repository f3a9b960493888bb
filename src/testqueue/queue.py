# queue.py
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, List, Tuple

from .errors import LeafTimeoutError, QueueBusyError, QueueFailed, SetupError
from .events import FAIL, FINISH, INFO, PASS, START, EventEmitter
from .model import Entry, LeafTest, Results, SubQueue

logger = logging.getLogger(__name__)


def _noop() -> None:
    return None


async def _settle(value: Any) -> Any:
    """Await `value` if it is awaitable, otherwise return it as is."""
    if inspect.isawaitable(value):
        return await value
    return value


class Queue(EventEmitter):
    """
    Sequential test queue.

    Entries run one at a time, in the order they were added. An entry is
    either a leaf test, called as ``fn(pass_, fail)``, or another Queue whose
    events bubble up to this one.

    A coroutine leaf occupies the queue until it returns, even after it has
    called pass_ or fail. With a timeout, the same bound applies to that
    trailing work and the coroutine is cancelled when it runs over.

    Example:
        queue = (
            Queue()
            .setup(open_db)
            .add_test("insert", test_insert)
            .add_test("api", api_queue)
            .teardown(close_db)
        )
        results = await queue.run()
    """

    def __init__(self, *, stop_on_fail: bool = True, timeout: float | None = None):
        super().__init__()
        self.stop_on_fail = stop_on_fail
        self.timeout = timeout

        self._entries: List[Entry] = []
        self._setup_fn: Callable[[], Any] = _noop
        self._teardown_fn: Callable[[], Any] = _noop

        self._cursor = 0
        self._passed = 0
        self._failed = 0
        self._running = False

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------

    def add_test(self, name: str | None, runnable):
        if isinstance(runnable, (LeafTest, SubQueue)):
            wrapped = runnable
        elif isinstance(runnable, Queue):
            wrapped = SubQueue(runnable)
        elif callable(runnable):
            wrapped = LeafTest(runnable)
        else:
            raise TypeError(
                f"Test {name!r} must be a callable or a Queue, got {type(runnable).__name__}"
            )

        if isinstance(wrapped, SubQueue) and wrapped.queue._contains(self):
            raise ValueError(f"Adding {name!r} would make the queue contain itself")

        self._entries.append(Entry(name=name, runnable=wrapped))
        return self

    def _contains(self, queue: "Queue") -> bool:
        """True if `queue` is this queue or nested anywhere below it."""
        if queue is self:
            return True
        return any(
            isinstance(e.runnable, SubQueue) and e.runnable.queue._contains(queue)
            for e in self._entries
        )

    def setup(self, fn: Callable[[], Any]):
        self._setup_fn = fn
        return self

    def teardown(self, fn: Callable[[], Any]):
        self._teardown_fn = fn
        return self

    def info(self, *args: Any) -> None:
        """Publish a free-form message to observers."""
        self.emit(INFO, *args)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return tuple(self._entries)

    @property
    def passed(self) -> int:
        return self._passed

    @property
    def failed(self) -> int:
        return self._failed

    @property
    def running(self) -> bool:
        return self._running

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(self) -> Results:
        """
        Run every entry in order.

        Returns:
          Results, when no test failed.

        Raises:
          QueueFailed: one or more tests failed, or teardown raised.
          SetupError: the setup action raised; nothing was run.
          QueueBusyError: this queue is already running.
        """
        if self._running:
            raise QueueBusyError("Queue is already running")

        self._running = True
        try:
            return await self._run()
        finally:
            self._running = False

    async def _run(self) -> Results:
        self._cursor = 0
        self._passed = 0
        self._failed = 0
        started = time.monotonic()

        try:
            await _settle(self._setup_fn())
        except Exception as e:
            logger.debug("setup failed: %r", e)
            raise SetupError(e) from e

        try:
            self.emit(START)
            logger.debug("queue started with %d entries", len(self._entries))

            while self._cursor < len(self._entries):
                entry = self._entries[self._cursor]
                ok = await self._dispatch(entry)
                self._cursor += 1

                if not ok and self.stop_on_fail:
                    logger.debug("stopping after failure of %r", entry.name)
                    break

            results = Results(
                passed=self._passed,
                failed=self._failed,
                elapsed=time.monotonic() - started,
            )
            self.emit(FINISH, results)
        except BaseException:
            # aborted by an observer error or cancellation; the original error wins
            try:
                await _settle(self._teardown_fn())
            except Exception as e:
                logger.warning("teardown failed after aborted run: %r", e)
            raise

        try:
            await _settle(self._teardown_fn())
        except Exception as e:
            logger.debug("teardown failed: %r", e)
            raise QueueFailed(results, teardown_error=e) from e

        if results.failed > 0:
            raise QueueFailed(results)
        return results

    async def _dispatch(self, entry: Entry) -> bool:
        """Run one entry and return True if it passed."""
        runnable = entry.runnable
        if isinstance(runnable, LeafTest):
            return await self._run_leaf(entry.name, runnable)
        if isinstance(runnable, SubQueue):
            return await self._run_sub_queue(entry.name, runnable)
        raise TypeError(f"Unsupported runnable: {runnable!r}")

    # ---- leaf tests ----

    async def _run_leaf(self, name: str | None, leaf: LeafTest) -> bool:
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future = loop.create_future()

        def pass_(value: Any = None) -> None:
            if not outcome.done():
                outcome.set_result((True, value))

        def fail(error: Any = None) -> None:
            if not outcome.done():
                outcome.set_result((False, error))

        def on_done(task: asyncio.Future) -> None:
            if task.cancelled():
                fail(asyncio.CancelledError())
            elif task.exception() is not None:
                fail(task.exception())

        task: asyncio.Future | None = None
        try:
            returned = leaf.fn(pass_, fail)
        except Exception as e:
            fail(e)
        else:
            if inspect.isawaitable(returned):
                task = asyncio.ensure_future(returned)
                task.add_done_callback(on_done)

        try:
            try:
                passed, value = await asyncio.wait_for(outcome, self.timeout)
            except asyncio.TimeoutError:
                passed, value = False, LeafTimeoutError(name=name, timeout=self.timeout)
                if task is not None:
                    await self._cancel(task)

            if task is not None and not task.done():
                # the entry ends when its coroutine returns, not when it reports
                done, _ = await asyncio.wait({task}, timeout=self.timeout)
                if not done:
                    logger.debug("cancelling %r, still running after reporting", name)
                    await self._cancel(task)
        finally:
            if task is not None and not task.done():
                # the run itself was cancelled
                task.cancel()

        if passed:
            self._passed += 1
            self.emit(PASS, name, value)
        else:
            self._failed += 1
            self.emit(FAIL, name, value)
        return passed

    @staticmethod
    async def _cancel(task: asyncio.Future) -> None:
        task.cancel()
        await asyncio.wait({task})

    # ---- nested queues ----

    async def _run_sub_queue(self, name: str | None, sub: SubQueue) -> bool:
        child = sub.queue

        def relay_start(*args: Any) -> None:
            # a name is already present when the child relays a grandchild
            self.emit(START, *(args or (name,)))

        def relay_finish(results: Results, *args: Any) -> None:
            self.emit(FINISH, results, *(args or (name,)))

        unsubscribers = [
            child.subscribe(PASS, lambda *args: self.emit(PASS, *args)),
            child.subscribe(FAIL, lambda *args: self.emit(FAIL, *args)),
            child.subscribe(INFO, lambda *args: self.emit(INFO, *args)),
            child.subscribe(START, relay_start),
            child.subscribe(FINISH, relay_finish),
        ]

        try:
            results = await child.run()
        except QueueFailed as e:
            self._passed += e.results.passed
            self._failed += e.results.failed
            if e.teardown_error is not None and e.results.failed == 0:
                # not tallied inside the child
                self._failed += 1
                self.emit(FAIL, name, e.teardown_error)
            return False
        except (SetupError, QueueBusyError) as e:
            # the child never ran its tests, so nothing was tallied for it
            self._failed += 1
            self.emit(FAIL, name, e)
            return False
        finally:
            for unsubscribe in unsubscribers:
                unsubscribe()

        self._passed += results.passed
        return True
