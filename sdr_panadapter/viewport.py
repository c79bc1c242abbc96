"""Navigation state and pointer handling.

ViewportState is an immutable value handed to every renderer. The
ViewportController is the only writer: it clamps inputs, maps pointer events
through FrequencyAxis and forwards frequency changes to the radio. This module
must not import UI classes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Tuple

from sdr_panadapter.config import PanadapterConfig
from sdr_panadapter.view.axis import FrequencyAxis


logger = logging.getLogger(__name__)

FrequencyCallback = Callable[[float], None]
FrequencyRange = Tuple[float, float]

# dB limits accepted for contrast/range sliders.
DB_CLAMP_MIN = -160.0
DB_CLAMP_MAX = 20.0
MIN_SAMPLE_RATE_HZ = 1.0


@dataclass(frozen=True)
class DbRange:
    min: float
    max: float


@dataclass(frozen=True)
class ViewportState:
    center_frequency_hz: float
    sample_rate_hz: float
    zoom_factor: float
    contrast_range: DbRange
    display_range: DbRange

    @property
    def span_hz(self) -> float:
        return self.sample_rate_hz / self.zoom_factor


@dataclass(frozen=True)
class _Drag:
    x0: float
    center0: float


def clamp_db_range(min_db: float, max_db: float) -> DbRange:
    min_db = max(DB_CLAMP_MIN, min(float(min_db), DB_CLAMP_MAX))
    max_db = max(DB_CLAMP_MIN, min(float(max_db), DB_CLAMP_MAX))
    if min_db >= max_db:
        max_db = min_db + 1.0
    return DbRange(min_db, max_db)


class ViewportController:
    """Owns ViewportState; every mutator returns the new state."""

    def __init__(
        self,
        cfg: PanadapterConfig,
        on_frequency: Optional[FrequencyCallback] = None,
        on_sample_rate: Optional[FrequencyCallback] = None,
    ):
        self.cfg = cfg
        self._lock = threading.Lock()
        self._on_frequency = on_frequency
        self._on_sample_rate = on_sample_rate
        self._drags: Dict[int, _Drag] = {}
        self._limits: Optional[FrequencyRange] = None
        self._state = ViewportState(
            center_frequency_hz=self._clamp_frequency(cfg.center_hz),
            sample_rate_hz=self._clamp_rate(cfg.sample_rate_hz),
            zoom_factor=self._clamp_zoom(1.0),
            contrast_range=clamp_db_range(cfg.contrast_min_db, cfg.contrast_max_db),
            display_range=clamp_db_range(cfg.range_min_db, cfg.range_max_db),
        )

    @property
    def state(self) -> ViewportState:
        with self._lock:
            return self._state

    def axis(self, width: float) -> FrequencyAxis:
        return FrequencyAxis.for_viewport(self.state, width)

    # -- clamping -----------------------------------------------------------

    def set_frequency_limits(self, limits: Optional[FrequencyRange]) -> ViewportState:
        """Restrict tuning to the radio's LO range; None lifts the restriction.

        The current center is clamped into the new range and forwarded.
        """
        if limits is not None:
            low, high = sorted((float(limits[0]), float(limits[1])))
            limits = (max(0.0, low), max(0.0, high))
        self._limits = limits
        return self.set_frequency(self.state.center_frequency_hz)

    @property
    def frequency_limits(self) -> Optional[FrequencyRange]:
        return self._limits

    def _clamp_frequency(self, hz: float) -> float:
        hz = max(0.0, float(hz))
        if self._limits is not None:
            hz = max(self._limits[0], min(self._limits[1], hz))
        return hz

    @staticmethod
    def _clamp_rate(hz: float) -> float:
        return max(MIN_SAMPLE_RATE_HZ, float(hz))

    def _clamp_zoom(self, zoom: float) -> float:
        return max(self.cfg.zoom_min, min(self.cfg.zoom_max, float(zoom)))

    # -- writers ------------------------------------------------------------

    def set_frequency(self, hz: float) -> ViewportState:
        hz = self._clamp_frequency(round(hz))
        with self._lock:
            self._state = replace(self._state, center_frequency_hz=hz)
            state = self._state
        if self._on_frequency is not None:
            self._on_frequency(hz)
        return state

    def step_frequency(self, delta_hz: float) -> ViewportState:
        return self.set_frequency(self.state.center_frequency_hz + delta_hz)

    def set_sample_rate(self, hz: float) -> ViewportState:
        hz = self._clamp_rate(hz)
        with self._lock:
            self._state = replace(self._state, sample_rate_hz=hz)
            state = self._state
        if self._on_sample_rate is not None:
            self._on_sample_rate(hz)
        return state

    def set_zoom(self, zoom: float) -> ViewportState:
        with self._lock:
            self._state = replace(self._state, zoom_factor=self._clamp_zoom(zoom))
            return self._state

    def set_contrast(self, min_db: float, max_db: float) -> ViewportState:
        with self._lock:
            self._state = replace(self._state, contrast_range=clamp_db_range(min_db, max_db))
            return self._state

    def set_display_range(self, min_db: float, max_db: float) -> ViewportState:
        with self._lock:
            self._state = replace(self._state, display_range=clamp_db_range(min_db, max_db))
            return self._state

    # -- pointer input ------------------------------------------------------

    def click(self, x: float, width: float) -> ViewportState:
        if width <= 0:
            return self.state
        return self.set_frequency(self.axis(width).pixel_to_frequency(x))

    def double_click(self, x: float, width: float) -> ViewportState:
        # Same mapping as click; kept separate so it can grow fine-tune behavior.
        return self.click(x, width)

    def hover_frequency(self, x: float, width: float) -> Optional[float]:
        if width <= 0:
            return None
        return float(self.axis(width).pixel_to_frequency(x))

    def drag_begin(self, x: float, pointer_id: int = 0) -> ViewportState:
        state = self.state
        self._drags[pointer_id] = _Drag(x0=float(x), center0=state.center_frequency_hz)
        return state

    def drag_move(self, x: float, width: float, pointer_id: int = 0) -> ViewportState:
        drag = self._drags.get(pointer_id)
        if drag is None or width <= 0:
            return self.state
        span = self.state.span_hz
        return self.set_frequency(drag.center0 - ((float(x) - drag.x0) / width) * span)

    def drag_end(self, pointer_id: int = 0) -> ViewportState:
        self._drags.pop(pointer_id, None)
        return self.state

    def is_dragging(self, pointer_id: int = 0) -> bool:
        return pointer_id in self._drags

    def wheel(
        self,
        delta_y: float,
        x: float,
        width: float,
        shift: bool = False,
        ctrl: bool = False,
    ) -> ViewportState:
        if delta_y == 0:
            return self.state
        if ctrl:
            if width <= 0:
                return self.state
            factor = self.cfg.zoom_out_factor if delta_y > 0 else self.cfg.zoom_in_factor
            return self.zoom_at(float(x) / float(width), factor, width)
        step = self.cfg.fine_step_hz if shift else self.cfg.wheel_step_hz
        delta = -step if delta_y > 0 else step
        return self.step_frequency(delta)

    def zoom_at(self, relative_x: float, factor: float, width: float = 1.0) -> ViewportState:
        relative_x = max(0.0, min(1.0, float(relative_x)))
        with self._lock:
            old = self._state
            new_center, new_zoom = FrequencyAxis.for_viewport(old, width).zoom_about(
                relative_x, factor, self.cfg.zoom_min, self.cfg.zoom_max
            )
            new_zoom = self._clamp_zoom(new_zoom)
            if new_zoom == old.zoom_factor:
                return old
            new_center = self._clamp_frequency(round(new_center))
            self._state = replace(old, zoom_factor=new_zoom, center_frequency_hz=new_center)
            state = self._state
        logger.debug("zoom %.2fx -> %.2fx about r=%.3f", old.zoom_factor, new_zoom, relative_x)
        if self._on_frequency is not None:
            self._on_frequency(new_center)
        return state
