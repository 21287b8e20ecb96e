"""Single-assignment asynchronous delivery channel."""

from __future__ import annotations

import asyncio
from typing import Any, Generator, Generic, List, Optional, TypeVar

from .errors import DeferredAlreadyCompletedError, DeferredPendingError

T = TypeVar("T")


class DeferredChannel(Generic[T]):
    """
    Holds either a value or a failure, assigned exactly once.

    Consumers ``await`` the channel (or call :meth:`wait`) and observe nothing
    until it is completed. Completing it a second time raises
    :class:`DeferredAlreadyCompletedError`.
    """

    def __init__(self) -> None:
        self._completed = False
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._waiters: List[asyncio.Future[None]] = []

    @property
    def done(self) -> bool:
        return self._completed

    @property
    def rejected(self) -> bool:
        return self._completed and self._error is not None

    def resolve(self, value: T) -> None:
        self._complete(value, None)

    def reject(self, error: BaseException) -> None:
        self._complete(None, error)

    def result(self) -> T:
        """Completed value; raises the rejection, or DeferredPendingError while pending."""

        if not self._completed:
            raise DeferredPendingError("Deferred channel has not been completed")
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def exception(self) -> Optional[BaseException]:
        if not self._completed:
            raise DeferredPendingError("Deferred channel has not been completed")
        return self._error

    async def wait(self) -> T:
        if not self._completed:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter
        return self.result()

    def __await__(self) -> Generator[Any, None, T]:
        return self.wait().__await__()

    def _complete(self, value: Optional[T], error: Optional[BaseException]) -> None:
        if self._completed:
            raise DeferredAlreadyCompletedError("Deferred channel was already completed")

        self._completed = True
        self._value = value
        self._error = error

        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def __repr__(self) -> str:
        if not self._completed:
            state = "pending"
        elif self._error is not None:
            state = f"rejected={self._error!r}"
        else:
            state = "resolved"
        return f"<DeferredChannel {state}>"
