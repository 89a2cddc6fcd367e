"""Single-flight cache — one shared in-flight operation, one cached result.

States:
- EMPTY: nothing cached, nothing running
- PENDING: one shared task is running; every caller awaits that same task
- RESOLVED: the task succeeded; its value is served with no I/O

PENDING -> EMPTY on failure, RESOLVED -> EMPTY only through invalidate().

All transitions happen synchronously between awaits on the owning event
loop, so checking the state and starting the task cannot interleave with
another caller.
"""

import asyncio
import functools
import logging
from collections.abc import Callable, Coroutine
from enum import StrEnum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheState(StrEnum):
    EMPTY = "empty"
    PENDING = "pending"
    RESOLVED = "resolved"


class SingleFlight(Generic[T]):
    """Memoizes one async operation and deduplicates concurrent callers.

    The operation is re-run on the next ``get()`` after a failure. Callers
    that are cancelled while waiting do not cancel the shared task; it keeps
    running for the remaining waiters.
    """

    def __init__(
        self,
        operation: Callable[[], Coroutine[Any, Any, T]],
        *,
        name: str = "single-flight",
    ) -> None:
        self._operation = operation
        self._name = name
        self._state = CacheState.EMPTY
        self._value: T | None = None
        self._pending: asyncio.Task[T] | None = None
        # Bumped by invalidate(); a task only settles into the cache if the
        # generation it started under is still current.
        self._generation = 0

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def value(self) -> T | None:
        """Cached value when RESOLVED, else None."""
        return self._value if self._state is CacheState.RESOLVED else None

    async def get(self) -> T:
        if self._state is CacheState.RESOLVED:
            return self._value  # type: ignore[return-value]

        if self._state is CacheState.PENDING and self._pending is not None:
            logger.debug("%s: attaching to in-flight operation", self._name)
            task = self._pending
        else:
            task = self._start()

        return await asyncio.shield(task)

    def invalidate(self) -> None:
        """Drop any cached value and detach from an in-flight task."""
        if self._state is CacheState.PENDING:
            logger.info(
                "%s: invalidated while an operation is in flight; "
                "its result will be discarded", self._name,
            )
        self._generation += 1
        self._state = CacheState.EMPTY
        self._value = None
        self._pending = None

    def _start(self) -> asyncio.Task[T]:
        logger.debug("%s: starting operation", self._name)
        task = asyncio.create_task(self._operation(), name=self._name)
        self._pending = task
        self._state = CacheState.PENDING
        task.add_done_callback(functools.partial(self._settle, self._generation))
        return task

    def _settle(self, generation: int, task: asyncio.Task[T]) -> None:
        # Retrieve the exception even if every waiter has gone away.
        exc = None if task.cancelled() else task.exception()

        if generation != self._generation:
            return

        self._pending = None
        if task.cancelled() or exc is not None:
            self._state = CacheState.EMPTY
            self._value = None
            return

        self._value = task.result()
        self._state = CacheState.RESOLVED
