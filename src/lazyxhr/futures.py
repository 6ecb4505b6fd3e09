"""Future handle with cancellation."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Callable, Generator, Generic, TypeVar

T = TypeVar("T")


class CancelableFuture(Generic[T]):
    """A ``concurrent.futures.Future`` paired with a cancellation function.

    Settlement is first-wins: once resolved or rejected, further ``resolve``,
    ``reject`` and ``cancel`` calls do nothing.

    Attributes:
        future: The underlying future. Await the handle itself from asyncio code.
    """

    def __init__(
        self,
        on_cancel: Callable[[], None],
        make_cancel_error: Callable[[], BaseException],
    ) -> None:
        self.future: Future[T] = Future()
        self._on_cancel = on_cancel
        self._make_cancel_error = make_cancel_error
        self._lock = threading.Lock()
        self._settled = False
        self._cancelling = False

    def _claim(self) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True
            return True

    def resolve(self, value: T) -> bool:
        if not self._claim():
            return False
        self.future.set_result(value)
        return True

    def reject(self, exc: BaseException) -> bool:
        if not self._claim():
            return False
        self.future.set_exception(exc)
        return True

    def cancel(self) -> bool:
        """Abort the request and reject with the cancel error.

        Only the first cancel call aborts; concurrent or later calls do nothing.

        Returns:
            False if the future had already settled or was already being canceled.
        """
        with self._lock:
            if self._settled or self._cancelling:
                return False
            self._cancelling = True
        self._on_cancel()
        # The abort may already have settled us through the transport's abort event.
        self.reject(self._make_cancel_error())
        return True

    @property
    def settled(self) -> bool:
        with self._lock:
            return self._settled

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: float | None = None) -> T:
        return self.future.result(timeout)

    def exception(self, timeout: float | None = None) -> BaseException | None:
        return self.future.exception(timeout)

    def add_done_callback(self, fn: Callable[[Future[T]], Any]) -> None:
        self.future.add_done_callback(fn)

    def __await__(self) -> Generator[Any, None, T]:
        return asyncio.wrap_future(self.future).__await__()
