"""Spectrum plot scene construction.

SpectrumPlotRenderer turns a frame plus ViewportState into a PlotScene: plain
geometry and text that a host paints with whatever toolkit it has. This
module must not import UI classes and never mutates ViewportState.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from sdr_panadapter.view.axis import FrequencyAxis
from sdr_panadapter.view.resample import PLOT_RADIUS, resample_spectrum
from sdr_panadapter.view.units import format_frequency, format_mhz, format_span


PLOT_MIN_DB = -120.0
PLOT_MAX_DB = 0.0

MAJOR_DIVISIONS = (10, 8)
MINOR_DIVISIONS = (50, 32)
DB_LABEL_STEPS = 8

BACKGROUND = "#0a0a0a"
MAJOR_GRID = "#2a2a2a"
MINOR_GRID = "#1a1a1a"
TRACE_COLOR = "#87CEEB"
TRACE_WIDTH = 1.5
CENTER_COLOR = "#ff4444"
BANDWIDTH_COLOR = "#ffaa00"
TEXT_COLOR = "#ffffff"
LABEL_COLOR = "#cccccc"

# (offset, (r, g, b, alpha)) from the top of the plot area to its bottom.
FILL_GRADIENT: Tuple[Tuple[float, Tuple[int, int, int, float]], ...] = (
    (0.0, (135, 206, 250, 0.8)),
    (0.3, (70, 130, 180, 0.6)),
    (0.6, (25, 25, 112, 0.4)),
    (1.0, (0, 0, 139, 0.2)),
)


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class Label:
    x: float
    y: float
    text: str
    align: str = "left"
    color: str = TEXT_COLOR


@dataclass(frozen=True)
class Marker:
    x: float
    color: str
    width: float
    dash: Tuple[float, ...] = ()


@dataclass
class PlotScene:
    width: int
    height: int
    plot_height: int
    background: str = BACKGROUND
    major_grid: List[Line] = field(default_factory=list)
    minor_grid: List[Line] = field(default_factory=list)
    trace: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    labels: List[Label] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)

    @property
    def has_trace(self) -> bool:
        return self.trace.size > 0

    def fill_polygon(self) -> List[Tuple[float, float]]:
        """Closed outline of the filled area under the trace."""
        if not self.has_trace:
            return []
        pts = [(0.0, float(self.plot_height))]
        pts.extend((float(x), float(y)) for x, y in enumerate(self.trace))
        pts.append((float(self.trace.size - 1), float(self.plot_height)))
        return pts


def db_to_y(db: np.ndarray, plot_height: float) -> np.ndarray:
    clamped = np.clip(np.asarray(db, dtype=np.float64), PLOT_MIN_DB, PLOT_MAX_DB)
    norm = (clamped - PLOT_MIN_DB) / (PLOT_MAX_DB - PLOT_MIN_DB)
    return plot_height - norm * plot_height


def _grid(width: float, plot_height: float, cols: int, rows: int) -> List[Line]:
    lines = [Line(i * width / cols, 0.0, i * width / cols, plot_height) for i in range(cols + 1)]
    lines.extend(Line(0.0, j * plot_height / rows, width, j * plot_height / rows) for j in range(rows + 1))
    return lines


class SpectrumPlotRenderer:
    def __init__(self, label_margin_px: int = 25, radius: float = PLOT_RADIUS):
        self.label_margin_px = int(label_margin_px)
        self.radius = float(radius)

    def render(
        self,
        frame: Optional[np.ndarray],
        state,
        title: str,
        width: int,
        height: int,
        bandwidth_hz: Optional[float] = None,
        axis: Optional[FrequencyAxis] = None,
    ) -> PlotScene:
        """
        Build the scene for one plot surface.

        ``axis`` overrides the viewport axis (the IF sub-view passes its own
        narrower axis). A missing frame still yields grid, labels and markers.
        """
        width = int(width)
        height = int(height)
        plot_h = max(0, height - self.label_margin_px)
        scene = PlotScene(width=width, height=height, plot_height=plot_h)
        if width <= 0 or height <= 0:
            return scene
        if axis is None:
            axis = FrequencyAxis.for_viewport(state, width)

        scene.minor_grid = _grid(width, plot_h, *MINOR_DIVISIONS)
        scene.major_grid = _grid(width, plot_h, *MAJOR_DIVISIONS)

        if frame is not None and len(frame) > 0:
            start, length = axis.bin_window(float(state.center_frequency_hz), len(frame))
            db = resample_spectrum(frame, width, self.radius, start=start, length=length)
            scene.trace = db_to_y(db, plot_h).astype(np.float32)

        scene.labels.extend(self._frequency_labels(axis, height))
        scene.labels.extend(self._db_labels(plot_h))
        scene.labels.append(
            Label(10, 15, f"{title} - Center: {format_mhz(axis.center_hz)}")
        )
        scene.labels.append(Label(10, 30, f"Span: {format_span(axis.span_hz)}"))
        scene.labels.append(Label(width - 10, 15, f"Zoom: {axis.zoom:.1f}x", align="right"))

        cx = float(axis.frequency_to_pixel(axis.center_hz))
        scene.markers.append(Marker(cx, CENTER_COLOR, 2.0))
        scene.labels.append(
            Label(cx + 4, height - 30, format_mhz(axis.center_hz, 3), color=CENTER_COLOR)
        )

        if bandwidth_hz is not None and bandwidth_hz > 0:
            half = bandwidth_hz / 2.0
            for edge in (axis.center_hz - half, axis.center_hz + half):
                x = float(axis.frequency_to_pixel(edge))
                if 0.0 <= x <= width:
                    scene.markers.append(Marker(x, BANDWIDTH_COLOR, 1.5, (4.0, 2.0)))
            scene.labels.append(
                Label(cx, 45, f"BW: {bandwidth_hz / 1e3:.1f} kHz", align="center", color=BANDWIDTH_COLOR)
            )
        return scene

    @staticmethod
    def _frequency_labels(axis: FrequencyAxis, height: int) -> List[Label]:
        out = []
        for x, freq in axis.ticks(10):
            out.append(Label(x, height - 8, format_frequency(freq), align="center", color=LABEL_COLOR))
        return out

    @staticmethod
    def _db_labels(plot_h: float) -> List[Label]:
        out = []
        for i in range(DB_LABEL_STEPS + 1):
            db = PLOT_MIN_DB + i * (PLOT_MAX_DB - PLOT_MIN_DB) / DB_LABEL_STEPS
            y = plot_h - (i / DB_LABEL_STEPS) * plot_h
            out.append(Label(5, y, f"{db:.0f}", color=LABEL_COLOR))
        return out


def peak_column(scene: PlotScene) -> Optional[float]:
    """Center of the highest run of trace columns (smallest y), or None."""
    if not scene.has_trace:
        return None
    top = float(np.min(scene.trace))
    cols = np.flatnonzero(np.isclose(scene.trace, top, atol=1e-3))
    return float(np.mean(cols))
