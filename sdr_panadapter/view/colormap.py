"""SDR-style intensity gradient: black, blue, cyan, green, yellow, red, white.

This is the single color law for power rendered as color. The segment bounds
are configurable; the channel ramps inside each segment are fixed.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np


DEFAULT_THRESHOLDS: Tuple[float, ...] = (0.15, 0.30, 0.50, 0.70, 0.85)


class ColorMapper:
    """Vectorised piecewise-linear map from t in [0, 1] to uint8 RGB."""

    def __init__(self, thresholds: Sequence[float] = DEFAULT_THRESHOLDS):
        bounds = [float(v) for v in thresholds]
        if len(bounds) != 5 or any(b <= a for a, b in zip([0.0] + bounds, bounds + [1.0])):
            raise ValueError("thresholds must be five increasing values inside (0, 1)")
        self.thresholds = tuple(bounds)
        self._edges = np.array([0.0] + bounds + [1.0], dtype=np.float64)

    def segment_of(self, t: np.ndarray) -> np.ndarray:
        """Segment index 0..5 for each t (low bound inclusive, last segment closed)."""
        t = np.asarray(t, dtype=np.float64)
        return np.searchsorted(self._edges[1:-1], t, side="right")

    def map(self, t: np.ndarray) -> np.ndarray:
        t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)
        seg = self.segment_of(t)
        lo = self._edges[seg]
        hi = self._edges[seg + 1]
        u = (t - lo) / (hi - lo)

        up = np.floor(u * 255.0)
        down = np.floor((1.0 - u) * 255.0)
        zero = np.zeros_like(u)
        full = np.full_like(u, 255.0)

        r = np.select(
            [seg == 0, seg == 1, seg == 2, seg == 3],
            [np.floor(u * 32.0), zero, zero, up],
            default=full,
        )
        g = np.select(
            [seg == 0, seg == 1, seg == 2, seg == 3, seg == 4],
            [np.floor(u * 32.0), up, full, full, down],
            default=up,
        )
        b = np.select(
            [seg == 0, seg == 1, seg == 2, seg == 3, seg == 4],
            [np.floor(u * 128.0), 128.0 + np.floor(u * 127.0), down, zero, zero],
            default=up,
        )
        rgb = np.stack([r, g, b], axis=-1)
        return np.clip(rgb, 0, 255).astype(np.uint8)

    def color(self, t: float) -> Tuple[int, int, int]:
        r, g, b = self.map(np.array([t]))[0]
        return int(r), int(g), int(b)
