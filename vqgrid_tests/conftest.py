import os
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set
from unittest.mock import MagicMock

import pytest
from PyQt5.QtWidgets import QApplication, QVBoxLayout, QWidget

from vqgrid.context import GridContext
from vqgrid.errors import GridDestroyedError
from vqgrid.grid.columns import ColumnDef, GridOptions
from vqgrid.grid.registry import InstanceRegistry
from vqgrid.grid.widget import EVENT_BEFORE_DESTROY, EVENTS
from vqgrid.host import HostAdapter
from vqgrid.local_settings import GridSettings
from vqgrid.scheduler import ScheduledTask

# Ensure headless Qt on CI/CLI runs.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class ManualScheduler:
    """Frame scheduler whose frames and timers advance only when told to."""

    def __init__(self) -> None:
        self.frames: List[ScheduledTask] = []
        self.timers: List[ScheduledTask] = []
        self.delays: List[int] = []

    def request_frame(self, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(callback)
        self.frames.append(task)
        return task

    def call_later(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> ScheduledTask:
        task = ScheduledTask(callback)
        self.timers.append(task)
        self.delays.append(delay_ms)
        return task

    def run_frames(self, count: int = 1) -> int:
        """Run the callbacks of the next `count` frames.

        Callbacks requested while a frame runs belong to the next frame.
        """
        fired = 0
        for _ in range(count):
            batch, self.frames = self.frames, []
            for task in batch:
                if task.active:
                    task.fire()
                    fired += 1
        return fired

    def run_timers(self) -> int:
        batch, self.timers = self.timers, []
        fired = 0
        for task in batch:
            if task.active:
                task.fire()
                fired += 1
        return fired

    def run_all(self, limit: int = 20):
        for _ in range(limit):
            if not self.run_frames() and not self.run_timers():
                return

    def pending_count(self) -> int:
        return sum(1 for t in self.frames + self.timers if t.active)

    def cancel_all(self) -> None:
        for task in self.frames + self.timers:
            task.cancel()
        self.frames = []
        self.timers = []


class FakeGrid:
    """A grid widget double that records the calls it receives.

    Attributes:
        calls: Names of the contract methods called, in order.
        fail_on: Names of the methods that raise `GridDestroyedError`.
    """

    instances: List["FakeGrid"] = []

    def __init__(
        self,
        mount: QWidget,
        rows: Sequence[Mapping[str, Any]],
        columns: Sequence[ColumnDef],
        options: Optional[GridOptions] = None,
    ):
        self.mount = mount
        self.rows = list(rows)
        self.columns = list(columns)
        self.options = options
        self.calls: List[str] = []
        self.fail_on: Set[str] = set()
        self.handlers: Dict[str, List[Callable[..., Any]]] = {
            e: [] for e in EVENTS
        }
        self.panels: Dict[str, QWidget] = {}
        self.destroyed = False
        FakeGrid.instances.append(self)

    @property
    def is_destroyed(self) -> bool:
        return self.destroyed

    def _call(self, name: str):
        if self.destroyed or name in self.fail_on:
            raise GridDestroyedError(name)
        self.calls.append(name)

    def resize_canvas(self):
        self._call("resize_canvas")

    def invalidate(self):
        self._call("invalidate")

    def invalidate_all_rows(self):
        self._call("invalidate_all_rows")

    def render(self):
        self._call("render")

    def set_data(self, rows):
        self._call("set_data")
        self.rows = list(rows)

    def update_row_count(self):
        self._call("update_row_count")

    def set_columns(self, columns):
        self._call("set_columns")
        self.columns = list(columns)

    def get_columns(self):
        return list(self.columns)

    def get_data(self):
        return list(self.rows)

    def container_node(self):
        return self.mount

    def subscribe(self, event, handler):
        self.handlers[event].append(handler)

    def emit(self, event, *args):
        for handler in list(self.handlers[event]):
            handler(*args)

    def insert_panel(self, after_row, key, panel):
        self.panels[key] = panel

    def remove_panel(self, key):
        return self.panels.pop(key, None) is not None

    def panel_keys(self):
        return list(self.panels.keys())

    def get_panel(self, key):
        return self.panels.get(key)

    def destroy(self):
        self._call("destroy")
        self.emit(EVENT_BEFORE_DESTROY, self)
        self.destroyed = True


@pytest.fixture(scope="session")
def qt_app():
    """Ensure a single QApplication exists for Qt-based tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def settings() -> GridSettings:
    return GridSettings(load=False)


@pytest.fixture
def host() -> MagicMock:
    """A host that confirms every question."""
    mock_host = MagicMock(spec=HostAdapter)
    mock_host.confirm.return_value = True
    return mock_host


@pytest.fixture
def fake_grid_cls():
    FakeGrid.instances = []
    return FakeGrid


@pytest.fixture
def container(qt_app):
    """A container that is part of a live widget tree."""
    root = QWidget()
    root.resize(640, 480)
    QVBoxLayout(root)
    widget = QWidget(root)
    root.layout().addWidget(widget)
    yield widget
    root.deleteLater()


@pytest.fixture
def ctx(qt_app, scheduler, settings, host):
    """A context that builds real grid widgets."""
    context = GridContext(stg=settings, host=host, scheduler=scheduler)
    yield context
    context.cleanup()


@pytest.fixture
def fake_ctx(qt_app, scheduler, settings, host, fake_grid_cls):
    """A context whose grids are `FakeGrid` doubles."""
    context = GridContext(
        stg=settings,
        host=host,
        scheduler=scheduler,
        registry=InstanceRegistry(widget_factory=fake_grid_cls),
    )
    context.reconciler.observer_factory = lambda target, margin: MagicMock()
    yield context
    context.cleanup()
