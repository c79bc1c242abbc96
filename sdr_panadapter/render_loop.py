"""Per-frame render driver.

Each tick pulls at most one frame from the SpectrumSource, validates it and
re-renders every view with a non-empty surface from the current
ViewportState. Views fail independently: an exception in one is logged and
recorded, the others still render. This module must not import UI classes.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from sdr_panadapter.config import PanadapterConfig
from sdr_panadapter.radio.base import SENTINEL_DB, SpectrumSource
from sdr_panadapter.scheduling import Scheduler, TimerHandle
from sdr_panadapter.view.axis import FrequencyAxis
from sdr_panadapter.view.colormap import ColorMapper
from sdr_panadapter.view.plot import PlotScene, SpectrumPlotRenderer
from sdr_panadapter.view.waterfall import WaterfallBuffer
from sdr_panadapter.viewport import ViewportController, ViewportState


logger = logging.getLogger(__name__)

MIN_VALID_BINS = 5
MIN_AVG_VARIATION_DB = 0.1

SPECTRUM_TITLE = "RF FFT"
IF_TITLE = "IF Spectrum"


class View(str, enum.Enum):
    SPECTRUM = "spectrum"
    WATERFALL = "waterfall"
    IF = "if"


@dataclass(frozen=True)
class RenderResult:
    ts_monotonic_ns: int
    state: ViewportState
    fresh: bool
    spectrum: Optional[PlotScene] = None
    if_spectrum: Optional[PlotScene] = None
    waterfall: Optional[np.ndarray] = None
    waterfall_labels: List[Tuple[float, str]] = field(default_factory=list)
    waterfall_row: Optional[np.ndarray] = None
    errors: Dict[str, str] = field(default_factory=dict)


ResultCallback = Callable[[RenderResult], None]


def check_frame(frame: np.ndarray) -> Optional[str]:
    """Reason a frame fails the quality check, or None when it is usable."""
    frame = np.asarray(frame, dtype=np.float64)
    if frame.ndim != 1 or frame.size == 0:
        return "empty frame"
    if not np.all(np.isfinite(frame)):
        return "non-finite values"
    live = np.count_nonzero((frame != SENTINEL_DB) & (frame != 0.0))
    if live < MIN_VALID_BINS:
        return f"only {live} non-sentinel bins"
    variation = float(np.mean(np.abs(np.diff(frame)))) if frame.size > 1 else 0.0
    if variation < MIN_AVG_VARIATION_DB:
        return f"flat frame (avg variation {variation:.3f} dB)"
    return None


def if_axis(state: ViewportState, width: float, if_fraction: float) -> FrequencyAxis:
    """Axis of the IF sub-view: a fixed slice of the full rate, independent of zoom."""
    return FrequencyAxis(
        center_hz=float(state.center_frequency_hz),
        sample_rate_hz=float(state.sample_rate_hz),
        zoom=1.0 / float(if_fraction),
        width=float(width),
    )


class RenderLoop:
    def __init__(
        self,
        source: Optional[SpectrumSource],
        controller: ViewportController,
        scheduler: Scheduler,
        cfg: PanadapterConfig,
        bandwidth: Optional[Callable[[], Optional[float]]] = None,
    ):
        self.source = source
        self.controller = controller
        self.cfg = cfg
        self._scheduler = scheduler
        self._bandwidth = bandwidth
        self.plot = SpectrumPlotRenderer(cfg.plot_label_margin_px, cfg.plot_smooth_radius)
        self.waterfall = WaterfallBuffer(
            ColorMapper(cfg.gradient_thresholds),
            radius=cfg.waterfall_smooth_radius,
            scale_height_px=cfg.waterfall_scale_px,
        )
        self._surfaces: Dict[View, Tuple[int, int]] = {view: (0, 0) for view in View}
        self._subscribers: List[ResultCallback] = []
        self._timer: Optional[TimerHandle] = None
        self._running = False
        self._last_frame: Optional[np.ndarray] = None
        self.last_result: Optional[RenderResult] = None
        self.frames_rendered = 0
        self.frames_invalid = 0
        self.frames_empty = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_frame(self) -> Optional[np.ndarray]:
        return self._last_frame

    def set_source(self, source: Optional[SpectrumSource]) -> None:
        self.source = source
        self._last_frame = None

    def subscribe(self, callback: ResultCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: ResultCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def set_surface_size(self, view: View, width: int, height: int) -> None:
        self._surfaces[View(view)] = (max(0, int(width)), max(0, int(height)))

    def surface_size(self, view: View) -> Tuple[int, int]:
        return self._surfaces[View(view)]

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._timer = self._scheduler.call_later(0.0, self.tick)

    def stop(self) -> None:
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def tick(self) -> None:
        self._timer = None
        if not self._running:
            return
        try:
            self.render_once()
        finally:
            if self._running:
                self._timer = self._scheduler.call_later(
                    self.cfg.frame_interval_ms / 1000.0, self.tick
                )

    def acquire(self) -> Optional[np.ndarray]:
        """Fetch and validate one frame; invalid frames count as no data."""
        frame = self.source.acquire_spectrum_frame() if self.source is not None else None
        if frame is None:
            self.frames_empty += 1
            return None
        frame = np.asarray(frame, dtype=np.float32)
        reason = check_frame(frame)
        if reason is not None:
            self.frames_invalid += 1
            logger.warning("dropping spectrum frame: %s", reason)
            return None
        self._last_frame = frame
        return frame

    def render_once(self) -> RenderResult:
        frame = self.acquire()
        fresh = frame is not None
        shown = frame if fresh else self._last_frame
        state = self.controller.state
        errors: Dict[str, str] = {}
        out: Dict[str, object] = {}

        w, h = self._surfaces[View.SPECTRUM]
        if w > 0 and h > 0:
            try:
                bw = self._bandwidth() if self._bandwidth is not None else None
                out["spectrum"] = self.plot.render(shown, state, SPECTRUM_TITLE, w, h, bandwidth_hz=bw)
            except Exception as exc:
                logger.exception("spectrum view failed")
                errors[View.SPECTRUM.value] = str(exc)

        w, h = self._surfaces[View.WATERFALL]
        try:
            self.waterfall.ensure_size(w, h)
            if w > 0 and h > 0:
                if fresh and self.waterfall.push(frame, state):
                    out["waterfall_row"] = self.waterfall.row(0).copy()
                out["waterfall"] = self.waterfall.image(state)
                out["waterfall_labels"] = self.waterfall.scale_labels(state)
        except Exception as exc:
            logger.exception("waterfall view failed; clearing buffer")
            errors[View.WATERFALL.value] = str(exc)
            self.waterfall.ensure_size(0, 0)

        w, h = self._surfaces[View.IF]
        if w > 0 and h > 0:
            try:
                axis = if_axis(state, w, self.cfg.if_fraction)
                out["if_spectrum"] = self.plot.render(shown, state, IF_TITLE, w, h, axis=axis)
            except Exception as exc:
                logger.exception("IF view failed")
                errors[View.IF.value] = str(exc)

        if fresh:
            self.frames_rendered += 1
        result = RenderResult(
            ts_monotonic_ns=time.monotonic_ns(),
            state=state,
            fresh=fresh,
            errors=errors,
            **out,
        )
        self.last_result = result
        self._emit(result)
        return result

    def _emit(self, result: RenderResult) -> None:
        for callback in list(self._subscribers):
            try:
                callback(result)
            except Exception:
                logger.exception("render subscriber failed")
