"""Helpers for reasoning about the host's widget tree."""

import uuid
from typing import Optional

from PyQt5 import sip
from PyQt5.QtWidgets import QApplication, QVBoxLayout, QWidget


def is_deleted(widget: Optional[QWidget]) -> bool:
    """Whether the widget is missing or its C++ side is gone."""
    return widget is None or sip.isdeleted(widget)


def is_attached(widget: Optional[QWidget]) -> bool:
    """Whether the widget is still part of a live widget tree.

    A widget is attached when it is alive and either has a parent or is a
    visible top-level window.
    """
    if is_deleted(widget):
        return False
    assert widget is not None
    return widget.parentWidget() is not None or widget.isVisible()


def contains(container: QWidget, widget: QWidget) -> bool:
    """Whether `widget` is `container` or one of its descendants."""
    if is_deleted(container) or is_deleted(widget):
        return False
    return container is widget or container.isAncestorOf(widget)


def generate_unique_id(prefix: str = "") -> str:
    """Create an identifier that is unique for the lifetime of the process."""
    token = uuid.uuid4().hex[:12]
    return f"{prefix}-{token}" if prefix else token


def ensure_widget_id(widget: QWidget, prefix: str) -> str:
    """Return the object name of the widget, assigning a fresh one if it has
    none.
    """
    name = widget.objectName()
    if not name:
        name = generate_unique_id(prefix)
        widget.setObjectName(name)
    return name


def find_widget_by_id(widget_id: str) -> Optional[QWidget]:
    """Locate a live widget by its object name."""
    app = QApplication.instance()
    if app is None:
        return None
    for widget in QApplication.allWidgets():
        if not sip.isdeleted(widget) and widget.objectName() == widget_id:
            return widget
    return None


def ensure_layout(widget: QWidget):
    """Return the layout of the widget, creating a vertical one if needed."""
    layout = widget.layout()
    if layout is None:
        layout = QVBoxLayout(widget)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)
    return layout


def clear_children(widget: QWidget) -> None:
    """Remove and schedule the deletion of every child widget."""
    layout = widget.layout()
    if layout is not None:
        while layout.count():
            item = layout.takeAt(0)
            child = item.widget() if item is not None else None
            if child is not None:
                child.setParent(None)
                child.deleteLater()
    for child in widget.findChildren(QWidget):
        if not sip.isdeleted(child) and child.parentWidget() is widget:
            child.setParent(None)
            child.deleteLater()
