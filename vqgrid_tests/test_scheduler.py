import gc
from unittest.mock import MagicMock

from PyQt5.QtTest import QTest

from vqgrid.scheduler import FrameScheduler, ScheduledTask


def test_task_fires_once():
    callback = MagicMock()
    task = ScheduledTask(callback)
    task.fire()
    task.fire()
    callback.assert_called_once_with()
    assert not task.active


def test_cancelled_task_does_not_fire():
    callback = MagicMock()
    task = ScheduledTask(callback)
    task.cancel()
    task.fire()
    callback.assert_not_called()


def test_frame_runs_on_next_event_loop_pass(qt_app):
    scheduler = FrameScheduler()
    callback = MagicMock()
    scheduler.request_frame(callback)
    assert scheduler.pending_count() == 1
    callback.assert_not_called()

    QTest.qWait(20)
    callback.assert_called_once_with()
    assert scheduler.pending_count() == 0


def test_cancel_pending_call(qt_app):
    scheduler = FrameScheduler()
    callback = MagicMock()
    task = scheduler.call_later(5, callback)
    task.cancel()
    assert scheduler.pending_count() == 0

    QTest.qWait(30)
    callback.assert_not_called()


def test_cancel_all(qt_app):
    scheduler = FrameScheduler()
    callbacks = [MagicMock() for _ in range(3)]
    for cb in callbacks:
        scheduler.call_later(5, cb)
    scheduler.cancel_all()
    assert scheduler.pending_count() == 0

    QTest.qWait(30)
    for cb in callbacks:
        cb.assert_not_called()


def test_failing_callback_is_logged(qt_app, caplog):
    scheduler = FrameScheduler()
    after = MagicMock()
    scheduler.request_frame(MagicMock(side_effect=ValueError("boom")))
    scheduler.request_frame(after)

    QTest.qWait(20)
    after.assert_called_once_with()
    assert "Scheduled callback failed" in caplog.text


def test_dropped_handles_still_fire(qt_app):
    scheduler = FrameScheduler()
    frame = MagicMock()
    later = MagicMock()
    scheduler.request_frame(frame)
    scheduler.call_later(5, later)
    gc.collect()

    QTest.qWait(30)
    frame.assert_called_once_with()
    later.assert_called_once_with()
    assert scheduler.pending_count() == 0
