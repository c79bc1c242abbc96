"""Affine frequency <-> pixel transform shared by every view.

Plot labels, waterfall overlays, click-to-tune and zoom all go through
FrequencyAxis so the three views and pointer input never disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np


Number = Union[float, np.ndarray]


@dataclass(frozen=True)
class FrequencyAxis:
    center_hz: float
    sample_rate_hz: float
    zoom: float
    width: float

    @classmethod
    def for_viewport(cls, state, width: float) -> "FrequencyAxis":
        return cls(
            center_hz=float(state.center_frequency_hz),
            sample_rate_hz=float(state.sample_rate_hz),
            zoom=float(state.zoom_factor),
            width=float(width),
        )

    @property
    def span_hz(self) -> float:
        return self.sample_rate_hz / self.zoom

    @property
    def start_hz(self) -> float:
        return self.center_hz - self.span_hz / 2.0

    @property
    def stop_hz(self) -> float:
        return self.center_hz + self.span_hz / 2.0

    def pixel_to_frequency(self, x: Number) -> Number:
        return self.start_hz + (x / self.width) * self.span_hz

    def frequency_to_pixel(self, freq_hz: Number) -> Number:
        return ((freq_hz - self.start_hz) / self.span_hz) * self.width

    def ticks(self, divisions: int = 10) -> list[Tuple[float, float]]:
        """(x, frequency) pairs at every 1/divisions of the width, both edges included."""
        out = []
        for i in range(divisions + 1):
            x = (i / divisions) * self.width
            out.append((x, float(self.pixel_to_frequency(x))))
        return out

    def zoom_about(
        self,
        relative_x: float,
        factor: float,
        zoom_min: float = 1.0,
        zoom_max: float = 100.0,
    ) -> Tuple[float, float]:
        """Return (new_center_hz, new_zoom) keeping the cursor frequency in place."""
        freq_at_cursor = float(self.pixel_to_frequency(relative_x * self.width))
        new_zoom = min(zoom_max, max(zoom_min, self.zoom * factor))
        new_span = self.sample_rate_hz / new_zoom
        new_center = freq_at_cursor - (relative_x - 0.5) * new_span
        return new_center, new_zoom

    def bin_window(self, frame_center_hz: float, n_bins: int) -> Tuple[float, float]:
        """Fractional (start_bin, bin_count) of a full-rate frame covered by this axis."""
        frame_start = frame_center_hz - self.sample_rate_hz / 2.0
        bins_per_hz = n_bins / self.sample_rate_hz
        return (self.start_hz - frame_start) * bins_per_hz, self.span_hz * bins_per_hz
