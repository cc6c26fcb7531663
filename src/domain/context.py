"""
Request context - Deadline and cancellation for one registration.

Each registration owns one RequestContext. Remote calls check it before
starting and size their own timeouts from it, so no operation outlives
the request that issued it.

Cancellation reaches calls already in flight in two ways:

- ``run`` executes a blocking call on a worker thread and stops waiting
  the moment the request is cancelled or its deadline passes
- ``on_cancel`` registers a callback (closing a client, cancelling a
  database statement) that ``cancel`` invokes
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TypeVar

from .exceptions import DeadlineExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Abandoned calls keep a worker until their own client timeout fires
_executor = ThreadPoolExecutor(thread_name_prefix="remote-call")


@dataclass
class RequestContext:
    """Monotonic deadline plus a cancellation flag."""

    deadline: float
    cancelled: threading.Event = field(default_factory=threading.Event)
    _callbacks: list[Callable[[], None]] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def with_timeout(cls, seconds: float) -> "RequestContext":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Mark the request cancelled and run every registered abort callback."""
        with self._lock:
            if self.cancelled.is_set():
                return
            self.cancelled.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            _invoke(callback)

    @contextmanager
    def on_cancel(self, callback: Callable[[], None]) -> Iterator[None]:
        """
        Run ``callback`` if the request is cancelled while the block executes.

        A request that is already cancelled runs the callback immediately.
        """
        with self._lock:
            already_cancelled = self.cancelled.is_set()
            if not already_cancelled:
                self._callbacks.append(callback)
        if already_cancelled:
            _invoke(callback)
        try:
            yield
        finally:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self.deadline - time.monotonic())

    def check(self, step: str) -> None:
        """
        Raise DeadlineExceeded if the request can no longer proceed.

        Args:
            step: Name of the operation about to start (for diagnostics)
        """
        if self.cancelled.is_set():
            raise DeadlineExceeded(f"request cancelled before {step}")
        if self.remaining() <= 0:
            raise DeadlineExceeded(f"deadline exceeded before {step}")

    def timeout_for(self, limit: float) -> float:
        """Per-operation timeout capped by the time left on the request."""
        return min(limit, self.remaining())

    def run(
        self,
        step: str,
        call: Callable[[], T],
        on_abort: Callable[[], None] | None = None,
    ) -> T:
        """
        Run a blocking call, giving up when the request ends first.

        The call's own exceptions propagate unchanged. If the request is
        cancelled or the deadline passes while the call is in flight,
        ``on_abort`` runs (to tear down the connection) and
        DeadlineExceeded is raised without waiting for the call.

        Args:
            step: Operation name (for diagnostics)
            call: Zero-argument blocking function
            on_abort: Optional teardown for the abandoned call
        """
        self.check(step)
        future = _executor.submit(call)
        settled = threading.Event()
        future.add_done_callback(lambda _: settled.set())
        with self.on_cancel(settled.set):
            settled.wait(self.remaining())

        if not future.done():
            future.cancel()
            if on_abort is not None:
                _invoke(on_abort)
            if self.cancelled.is_set():
                logger.warning("%s aborted: request cancelled", step)
                raise DeadlineExceeded(f"request cancelled during {step}")
            logger.warning("%s aborted: deadline exceeded", step)
            raise DeadlineExceeded(f"deadline exceeded during {step}")
        return future.result()


def _invoke(callback: Callable[[], None]) -> None:
    # Abort hooks are best effort; one failing hook must not block the others
    try:
        callback()
    except Exception:
        logger.exception("Cancellation callback %r failed", callback)
