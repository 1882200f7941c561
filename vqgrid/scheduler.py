"""Cancellable deferred calls on the UI thread.

A frame boundary is approximated by the next pass through the Qt event
loop. Delayed calls are plain single-shot timers.
"""

import logging
from typing import Callable, Dict, Optional

from PyQt5.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a callback that will run later.

    Attributes:
        callback: The function to call.
        active: True until the callback runs or the task is cancelled.
    """

    callback: Callable[[], None]
    active: bool

    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        """Prevent the callback from running."""
        self.active = False

    def fire(self) -> None:
        """Run the callback unless the task was cancelled or already ran."""
        if not self.active:
            return
        self.active = False
        self.callback()


class FrameScheduler(QObject):
    """Hands out scheduled tasks backed by single-shot timers.

    The scheduler keeps a reference to every timer and its task until the
    timer fires or is cancelled, so a pending call runs even when the caller
    drops the returned handle.
    """

    _timers: Dict[QTimer, "_TimerTask"]

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._timers = {}

    def request_frame(self, callback: Callable[[], None]) -> ScheduledTask:
        """Run `callback` at the next frame boundary."""
        return self.call_later(0, callback)

    def call_later(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> ScheduledTask:
        """Run `callback` after `delay_ms` milliseconds.

        Args:
            delay_ms: The delay in milliseconds.
            callback: The function to call.

        Returns:
            The handle that can be used to cancel the call.
        """
        task = _TimerTask(callback, self)
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(max(0, delay_ms))
        task.timer = timer
        timer.timeout.connect(task.fire)
        self._timers[timer] = task
        timer.start()
        return task

    def pending_count(self) -> int:
        """Number of timers that have not fired yet."""
        return len(self._timers)

    def cancel_all(self) -> None:
        """Stop every pending timer."""
        for timer, task in list(self._timers.items()):
            task.active = False
            timer.stop()
            timer.deleteLater()
        self._timers.clear()

    def _release(self, timer: Optional[QTimer]) -> None:
        if timer is None or timer not in self._timers:
            return
        del self._timers[timer]
        timer.stop()
        timer.deleteLater()


class _TimerTask(ScheduledTask):
    """A scheduled task that owns a timer."""

    scheduler: FrameScheduler
    timer: Optional[QTimer]

    def __init__(
        self, callback: Callable[[], None], scheduler: FrameScheduler
    ) -> None:
        super().__init__(callback)
        self.scheduler = scheduler
        self.timer = None

    def cancel(self) -> None:
        super().cancel()
        self.scheduler._release(self.timer)

    def fire(self) -> None:
        self.scheduler._release(self.timer)
        try:
            super().fire()
        except Exception:
            logger.exception("Scheduled callback failed")
