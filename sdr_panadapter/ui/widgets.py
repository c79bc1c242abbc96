"""Qt canvases that paint engine render results.

Canvases only paint what the engine hands them and forward pointer input
back to it; all navigation maths stays in the engine.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np
import pyqtgraph as pg
from pyqtgraph.Qt import QtCore, QtGui, QtWidgets

from sdr_panadapter.engine import Engine
from sdr_panadapter.render_loop import RenderResult, View
from sdr_panadapter.ui.gesture import PointerGesture
from sdr_panadapter.view.plot import (
    BACKGROUND,
    FILL_GRADIENT,
    MAJOR_GRID,
    MINOR_GRID,
    TRACE_COLOR,
    TRACE_WIDTH,
    PlotScene,
)
from sdr_panadapter.view.units import format_mhz


SCALE_FONT_PT = 7
LABEL_FONT_PT = 8


class _QtTimerHandle:
    def __init__(self, timer: QtCore.QTimer):
        self._timer: Optional[QtCore.QTimer] = timer

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer.deleteLater()
            self._timer = None

    def _fired(self) -> None:
        if self._timer is not None:
            self._timer.deleteLater()
            self._timer = None


class QtScheduler:
    """Single-shot QTimers on the GUI thread."""

    def __init__(self, parent: Optional[QtCore.QObject] = None):
        self._parent = parent

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> _QtTimerHandle:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)
        handle = _QtTimerHandle(timer)
        timer.timeout.connect(handle._fired)
        timer.timeout.connect(callback)
        timer.start(max(0, int(round(delay_s * 1000.0))))
        return handle


def _draw_text(painter: QtGui.QPainter, x: float, y: float, text: str, align: str = "left") -> None:
    width = painter.fontMetrics().horizontalAdvance(text)
    if align == "center":
        x -= width / 2.0
    elif align == "right":
        x -= width
    painter.drawText(QtCore.QPointF(x, y), text)


def paint_scene(painter: QtGui.QPainter, scene: PlotScene) -> None:
    painter.fillRect(0, 0, scene.width, scene.height, pg.mkColor(scene.background))

    painter.setPen(pg.mkPen(MINOR_GRID, width=0.5))
    for line in scene.minor_grid:
        painter.drawLine(QtCore.QLineF(line.x1, line.y1, line.x2, line.y2))
    painter.setPen(pg.mkPen(MAJOR_GRID, width=1))
    for line in scene.major_grid:
        painter.drawLine(QtCore.QLineF(line.x1, line.y1, line.x2, line.y2))

    if scene.has_trace:
        gradient = QtGui.QLinearGradient(0, 0, 0, scene.plot_height)
        for offset, (r, g, b, a) in FILL_GRADIENT:
            gradient.setColorAt(offset, QtGui.QColor(r, g, b, int(a * 255)))
        fill = QtGui.QPolygonF([QtCore.QPointF(x, y) for x, y in scene.fill_polygon()])
        painter.setPen(QtCore.Qt.NoPen)
        painter.setBrush(QtGui.QBrush(gradient))
        painter.drawPolygon(fill)
        painter.setBrush(QtCore.Qt.NoBrush)

        trace = QtGui.QPolygonF([QtCore.QPointF(float(x), float(y)) for x, y in enumerate(scene.trace)])
        painter.setPen(pg.mkPen(TRACE_COLOR, width=TRACE_WIDTH))
        painter.drawPolyline(trace)

    for marker in scene.markers:
        pen = pg.mkPen(marker.color, width=marker.width)
        if marker.dash:
            # Qt dash lengths are multiples of the pen width.
            pen.setDashPattern([d / max(marker.width, 1.0) for d in marker.dash])
        painter.setPen(pen)
        painter.drawLine(QtCore.QLineF(marker.x, 0, marker.x, scene.plot_height))

    font = painter.font()
    font.setPointSize(LABEL_FONT_PT)
    painter.setFont(font)
    for label in scene.labels:
        painter.setPen(pg.mkColor(label.color))
        _draw_text(painter, label.x, label.y, label.text, label.align)


class _Canvas(QtWidgets.QWidget):
    """Base canvas: reports its size and forwards mouse input for one view."""

    def __init__(self, engine: Engine, view: View, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.engine = engine
        self.view = view
        self._gesture = PointerGesture(engine, view)
        self.setMouseTracking(True)
        self.setMinimumHeight(120)
        self.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Expanding)

    def set_result(self, result: RenderResult) -> None:
        raise NotImplementedError

    def resizeEvent(self, ev):
        super().resizeEvent(ev)
        self.engine.set_surface_size(self.view, self.width(), self.height())
        if not self.engine.loop.running:
            self.engine.render_now()

    def mousePressEvent(self, ev):
        if ev.button() != QtCore.Qt.LeftButton:
            super().mousePressEvent(ev)
            return
        self._gesture.press(float(ev.pos().x()))
        ev.accept()

    def mouseMoveEvent(self, ev):
        x = float(ev.pos().x())
        if self._gesture.active and ev.buttons() & QtCore.Qt.LeftButton:
            self._gesture.move(x)
            ev.accept()
            return
        freq = self.engine.hover(self.view, x)
        if freq is not None:
            QtWidgets.QToolTip.showText(ev.globalPos(), format_mhz(freq), self)

    def mouseReleaseEvent(self, ev):
        if ev.button() != QtCore.Qt.LeftButton or not self._gesture.active:
            super().mouseReleaseEvent(ev)
            return
        self._gesture.release(float(ev.pos().x()))
        ev.accept()

    def leaveEvent(self, ev):
        self._gesture.leave()
        super().leaveEvent(ev)

    def mouseDoubleClickEvent(self, ev):
        if ev.button() == QtCore.Qt.LeftButton:
            self.engine.double_click(self.view, float(ev.pos().x()))
            ev.accept()
            return
        super().mouseDoubleClickEvent(ev)

    def wheelEvent(self, ev):
        # Qt reports positive angle deltas when scrolling up; the engine follows
        # the DOM convention where positive means down.
        delta = -ev.angleDelta().y()
        if delta == 0:
            ev.ignore()
            return
        mods = ev.modifiers()
        self.engine.wheel(
            self.view,
            float(delta),
            float(ev.position().x()),
            shift=bool(mods & QtCore.Qt.ShiftModifier),
            ctrl=bool(mods & QtCore.Qt.ControlModifier),
        )
        ev.accept()


class SpectrumCanvas(_Canvas):
    def __init__(self, engine: Engine, view: View = View.SPECTRUM, parent=None):
        super().__init__(engine, view, parent)
        self.scene: Optional[PlotScene] = None

    def set_result(self, result: RenderResult) -> None:
        scene = result.if_spectrum if self.view is View.IF else result.spectrum
        if scene is None:
            return
        self.scene = scene
        self.update()

    def paintEvent(self, ev):
        painter = QtGui.QPainter(self)
        try:
            if self.scene is None:
                painter.fillRect(self.rect(), pg.mkColor(BACKGROUND))
            else:
                paint_scene(painter, self.scene)
        finally:
            painter.end()


class WaterfallCanvas(_Canvas):
    def __init__(self, engine: Engine, parent=None):
        super().__init__(engine, View.WATERFALL, parent)
        self.image: Optional[QtGui.QImage] = None
        self.labels: list = []

    def set_result(self, result: RenderResult) -> None:
        img = result.waterfall
        if img is None or img.size == 0:
            return
        self.image = pg.functions.makeQImage(np.ascontiguousarray(img), alpha=False, transpose=False)
        self.labels = list(result.waterfall_labels)
        self.update()

    def paintEvent(self, ev):
        painter = QtGui.QPainter(self)
        try:
            painter.fillRect(self.rect(), QtCore.Qt.black)
            if self.image is None:
                return
            painter.drawImage(0, 0, self.image)
            font = painter.font()
            font.setPointSize(SCALE_FONT_PT)
            painter.setFont(font)
            painter.setPen(QtCore.Qt.white)
            y = self.image.height() - 4
            for x, text in self.labels:
                _draw_text(painter, x, y, text, "center")
        finally:
            painter.end()
