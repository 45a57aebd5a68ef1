"""
Collapse concurrent calls for the same key into one underlying operation.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class _Call(Generic[T]):
    __slots__ = ("task", "waiters")

    def __init__(self, task: asyncio.Task[T]) -> None:
        self.task = task
        self.waiters = 0


class SingleFlight(Generic[T]):
    """
    Share one in-flight task between every caller that asks for the same key.

    A waiter that is cancelled detaches from the shared task. The task itself
    is cancelled only when its last waiter goes away.
    """

    def __init__(self) -> None:
        self._calls: Dict[str, _Call[Any]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._calls

    async def do(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        call = self._calls.get(key)
        if call is None:
            task: asyncio.Task[T] = asyncio.ensure_future(factory())
            call = _Call(task)
            self._calls[key] = call
            task.add_done_callback(lambda _t, k=key, c=call: self._forget(k, c))
        else:
            logger.debug("Joining in-flight call", key=key, waiters=call.waiters)

        call.waiters += 1
        try:
            return await asyncio.shield(call.task)
        finally:
            call.waiters -= 1
            if call.waiters == 0 and not call.task.done():
                call.task.cancel()

    def _forget(self, key: str, call: _Call[Any]) -> None:
        if self._calls.get(key) is call:
            del self._calls[key]
