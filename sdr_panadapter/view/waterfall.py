"""Scrolling waterfall image kept as a ring of RGB rows.

Each pushed frame becomes one new row at the bottom of the image; the oldest
row falls off the top. The frequency-scale strip and the center marker are
composited from the current ViewportState when the image is requested, so the
stored rows never carry overlay pixels.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from sdr_panadapter.view.axis import FrequencyAxis
from sdr_panadapter.view.colormap import ColorMapper
from sdr_panadapter.view.resample import WATERFALL_RADIUS, resample_spectrum
from sdr_panadapter.view.units import format_frequency_short


logger = logging.getLogger(__name__)

SCALE_ALPHA = 0.7
TICK_COUNT = 10
TICK_HEIGHT_PX = 4
MARKER_RGB = (255, 0, 0)
TICK_RGB = (255, 255, 255)


def intensity(db: np.ndarray, display_range, contrast_range) -> np.ndarray:
    """
    Normalized 0..1 intensity of resampled dB values.

    Values are clamped to ``display_range`` and normalized, then bent by the
    contrast curve ``n ** (1 / max(0.1, |contrast.min| / 50))``.
    """
    lo = float(display_range.min)
    hi = float(display_range.max)
    clamped = np.clip(np.asarray(db, dtype=np.float64), lo, hi)
    norm = (clamped - lo) / (hi - lo)
    gamma = 1.0 / max(0.1, abs(float(contrast_range.min)) / 50.0)
    return np.clip(np.power(norm, gamma), 0.0, 1.0)


class WaterfallBuffer:
    def __init__(
        self,
        mapper: Optional[ColorMapper] = None,
        radius: float = WATERFALL_RADIUS,
        scale_height_px: int = 18,
    ):
        self.mapper = mapper or ColorMapper()
        self.radius = float(radius)
        self.scale_height_px = int(scale_height_px)
        self._rows = np.zeros((0, 0, 3), dtype=np.uint8)
        self._write_index = 0
        self._count = 0

    @property
    def width(self) -> int:
        return int(self._rows.shape[1])

    @property
    def height(self) -> int:
        return int(self._rows.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def row_count(self) -> int:
        return self._count

    def ensure_size(self, width: int, height: int) -> bool:
        """Reallocate and clear when the surface size changed. Returns True if it did."""
        width = max(0, int(width))
        height = max(0, int(height))
        if (width, height) == self.size:
            return False
        logger.debug("waterfall resize %sx%s -> %sx%s", self.width, self.height, width, height)
        self._rows = np.zeros((height, width, 3), dtype=np.uint8)
        self._write_index = 0
        self._count = 0
        return True

    def clear(self) -> None:
        self._rows[...] = 0
        self._write_index = 0
        self._count = 0

    def compute_row(self, frame: np.ndarray, state, width: Optional[int] = None) -> np.ndarray:
        """One RGB row (width, 3) for ``frame`` under the current viewport."""
        width = self.width if width is None else int(width)
        axis = FrequencyAxis.for_viewport(state, width)
        start, length = axis.bin_window(float(state.center_frequency_hz), len(frame))
        db = resample_spectrum(frame, width, self.radius, start=start, length=length)
        t = intensity(db, state.display_range, state.contrast_range)
        return self.mapper.map(t)

    def push(self, frame: np.ndarray, state) -> bool:
        """Append one row for ``frame``; the oldest row is evicted once full."""
        if self.height == 0 or self.width == 0:
            return False
        row = self.compute_row(frame, state)
        if row.shape != (self.width, 3):
            logger.warning("waterfall row shape %s does not fit buffer; clearing", row.shape)
            self.clear()
            return False
        self._rows[self._write_index] = row
        self._write_index = (self._write_index + 1) % self.height
        self._count = min(self._count + 1, self.height)
        return True

    def row(self, age: int) -> np.ndarray:
        """Row by age: 0 is the newest row."""
        if not 0 <= age < self.height:
            raise IndexError(age)
        return self._rows[(self._write_index - 1 - age) % self.height]

    def ordered(self) -> np.ndarray:
        """(height, width, 3) image, oldest row on top, newest at the bottom."""
        if self.height == 0:
            return self._rows.copy()
        return np.roll(self._rows, -self._write_index, axis=0)

    def image(self, state) -> np.ndarray:
        """Ordered image with the frequency scale and center marker composited."""
        img = self.ordered()
        h, w = img.shape[:2]
        if h == 0 or w == 0:
            return img
        band = min(self.scale_height_px, h)
        strip = img[h - band:].astype(np.float32) * (1.0 - SCALE_ALPHA)
        img[h - band:] = strip.astype(np.uint8)

        for x, _ in FrequencyAxis.for_viewport(state, w).ticks(TICK_COUNT):
            col = min(w - 1, max(0, int(round(x - 0.5))))
            img[h - band:h - band + min(TICK_HEIGHT_PX, band), col] = TICK_RGB

        cx = w // 2
        img[h - band:, max(0, cx - 1):min(w, cx + 1)] = MARKER_RGB
        return img

    def scale_labels(self, state) -> List[Tuple[float, str]]:
        """(x, text) pairs for the scale strip, drawn by the host at ``height - 4``."""
        if self.width == 0:
            return []
        axis = FrequencyAxis.for_viewport(state, self.width)
        return [(x, format_frequency_short(f)) for x, f in axis.ticks(TICK_COUNT)]
