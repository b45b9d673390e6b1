"""Debounce bursts of filter edits into a single compile-and-apply."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger("wlheat.scheduler")

T = TypeVar("T")

TimerFactory = Callable[[float, Callable[[], None]], Any]


class SchedulerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    APPLYING = "applying"


def _thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class ChangeScheduler(Generic[T]):
    """Run ``apply`` with the latest submitted snapshot once edits settle.

    Each ``submit`` restarts the quiescence window; only the snapshot present
    when the window elapses is applied. Failures are logged and not retried.

    ``timer_factory(delay, callback)`` must return an object with ``start()``
    and ``cancel()``; it defaults to a daemon :class:`threading.Timer`.
    """

    def __init__(
        self,
        apply: Callable[[T], Any],
        delay: float = 0.25,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self._apply = apply
        self.delay = delay
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.Lock()
        self._apply_lock = threading.Lock()
        self._timer = None
        self._pending: Optional[T] = None
        self._has_pending = False
        self._applying = False
        self.last_result: Any = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            if self._has_pending:
                return SchedulerState.PENDING
            if self._applying:
                return SchedulerState.APPLYING
            return SchedulerState.IDLE

    def submit(self, snapshot: T) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = snapshot
            self._has_pending = True
            timer = self._timer_factory(self.delay, lambda: self._fire(timer))
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
            self._has_pending = False

    def flush(self) -> Any:
        """Apply the pending snapshot now. Returns its result, or ``None`` if nothing was pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
        return self._run()

    def apply_now(self, snapshot: T) -> Any:
        """Apply ``snapshot`` without waiting, replacing anything still pending.

        Returns the result, or ``None`` when the apply failed.
        """
        with self._apply_lock:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                self._timer = None
                self._pending = snapshot
                self._has_pending = True
            return self._run_locked()

    def _fire(self, timer) -> None:
        with self._lock:
            if timer is not self._timer:
                # superseded by a later submit
                return
            self._timer = None
        self._run()

    def _run(self) -> Any:
        with self._apply_lock:
            return self._run_locked()

    def _run_locked(self) -> Any:
        with self._lock:
            if not self._has_pending:
                return None
            snapshot = self._pending
            self._pending = None
            self._has_pending = False
            self._applying = True
        try:
            result = self._apply(snapshot)
            self.last_result = result
            return result
        except Exception:
            logger.exception("Filter apply failed; waiting for the next edit")
            return None
        finally:
            with self._lock:
                self._applying = False


__all__ = ["ChangeScheduler", "SchedulerState"]
