"""Gaussian-weighted resampling of dB spectra onto a pixel grid.

Maps an N-bin power array onto W output columns. This module must not import
UI or radio classes; it is purely numerical and deterministic.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np


FLOOR_DB = -120.0
PLOT_RADIUS = 2.5
WATERFALL_RADIUS = 1.5


def resample_spectrum(
    data: np.ndarray,
    width: int,
    radius: float = PLOT_RADIUS,
    start: float = 0.0,
    length: Optional[float] = None,
) -> np.ndarray:
    """
    Resample ``data`` to ``width`` columns.

    Column ``i`` sits at fractional source position ``start + i * length / width``
    and averages the source bins within ``radius`` of it, weighted by
    ``exp(-d**2 / (2 * radius**2))``. Columns with no source bin in range get
    FLOOR_DB. ``start``/``length`` select a sub-window of the frame (zoomed or IF
    views); by default the whole frame is used.
    """
    width = int(width)
    if width <= 0:
        return np.zeros(0, dtype=np.float32)
    data = np.asarray(data, dtype=np.float64)
    n = data.size
    if n == 0:
        return np.full(width, FLOOR_DB, dtype=np.float32)
    if length is None:
        length = float(n)
    radius = max(float(radius), 1e-6)

    step = float(length) / float(width)
    centers = float(start) + np.arange(width, dtype=np.float64) * step

    lo = np.maximum(0.0, np.floor(centers - radius))
    hi = np.minimum(float(n - 1), np.ceil(centers + radius))

    # Every index in [floor(c - r), ceil(c + r)] lies within these offsets of floor(c).
    reach = int(math.ceil(radius))
    offsets = np.arange(-reach, reach + 2, dtype=np.float64)
    idx = np.floor(centers)[:, None] + offsets[None, :]
    in_range = (idx >= lo[:, None]) & (idx <= hi[:, None])

    dist = idx - centers[:, None]
    weights = np.exp(-(dist * dist) / (2.0 * radius * radius))
    weights = np.where(in_range, weights, 0.0)

    safe_idx = np.clip(idx, 0, n - 1).astype(np.int64)
    total = np.sum(weights, axis=1)
    acc = np.sum(weights * data[safe_idx], axis=1)

    out = np.full(width, FLOOR_DB, dtype=np.float64)
    valid = total > 0
    out[valid] = acc[valid] / total[valid]
    return out.astype(np.float32)
