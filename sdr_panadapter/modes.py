"""Demodulation modes and the bandwidth each one shows on the plot."""

from __future__ import annotations

from typing import Dict, Optional


MODE_BANDWIDTH_HZ: Dict[str, Optional[float]] = {
    "WBFM": 200_000.0,
    "NBFM": 12_500.0,
    "AM": 10_000.0,
    "USB": 2_700.0,
    "LSB": 2_700.0,
    "CW": 2_700.0,
    "DSB": 6_000.0,
    # RAW passes the whole sampled band.
    "RAW": None,
}

MODES = tuple(MODE_BANDWIDTH_HZ)


def mode_bandwidth(mode: str, sample_rate_hz: float) -> float:
    key = str(mode).upper()
    if key not in MODE_BANDWIDTH_HZ:
        raise ValueError(f"unknown demod mode {mode!r}")
    bw = MODE_BANDWIDTH_HZ[key]
    return float(sample_rate_hz) if bw is None else bw
