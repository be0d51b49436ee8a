"""One-shot readiness gate for the sandbox worker."""

from __future__ import annotations

import asyncio
from enum import Enum


class ReadinessState(str, Enum):
    NOT_READY = "not_ready"
    READY = "ready"


class Readiness:
    """Two-state machine ``NOT_READY -> READY`` with a queue of waiters.

    :meth:`wait` parks the caller on a future; :meth:`set` releases every
    parked waiter in one step.  :meth:`fail` releases them with an exception
    instead (the worker died before bootstrapping) and leaves the state at
    ``NOT_READY``.  Only :meth:`reset` goes back, and only the owning manager
    calls it on teardown.
    """

    def __init__(self) -> None:
        self._state = ReadinessState.NOT_READY
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ReadinessState.READY

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def wait(self) -> None:
        """Return once ready; raise whatever :meth:`fail` was given."""
        if self._state is ReadinessState.READY:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def set(self) -> bool:
        """Transition to ``READY``.  Returns ``False`` if already ready."""
        if self._state is ReadinessState.READY:
            return False
        self._state = ReadinessState.READY
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        return True

    def fail(self, exc: BaseException) -> None:
        """Release every current waiter with *exc*."""
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(exc)

    def reset(self) -> None:
        self._state = ReadinessState.NOT_READY
