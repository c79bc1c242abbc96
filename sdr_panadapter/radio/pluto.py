"""ADALM-Pluto device driver.

Encapsulates pyadi-iio Pluto interactions and tuning limits. This module must
not import any UI classes to keep SDR operations headless and testable.
"""

from __future__ import annotations

from typing import Optional

import adi
import numpy as np

from sdr_panadapter.config import PanadapterConfig


PLUTO_MIN_HZ = 325_000_000
PLUTO_MAX_HZ = 3_800_000_000


class PlutoDevice:
    """Small wrapper around pyadi-iio Pluto."""

    name = "pluto"

    def __init__(self, cfg: PanadapterConfig):
        self.cfg = cfg
        self.dev = adi.Pluto(uri=cfg.uri)
        self.dev.rx_enabled_channels = [0]
        # Four FFTs per buffer are averaged into one frame.
        self.dev.rx_buffer_size = int(cfg.fft_size) * 4
        self.dev.rx_destroy_buffer()

        self.set_sample_rate(cfg.sample_rate_hz)
        if cfg.gain_db is None:
            self.dev.gain_control_mode_chan0 = "slow_attack"
        else:
            self.dev.gain_control_mode_chan0 = "manual"
            self.set_gain_db(cfg.gain_db)
        self.set_center_hz(cfg.center_hz)

    def close(self) -> None:
        self.dev = None

    def frequency_range_hz(self) -> tuple[float, float]:
        return float(PLUTO_MIN_HZ), float(PLUTO_MAX_HZ)

    def set_center_hz(self, hz: float) -> None:
        hz = int(hz)
        # Clamp to Pluto tuning range (325 MHz .. 3.8 GHz).
        hz = max(PLUTO_MIN_HZ, min(PLUTO_MAX_HZ, hz))
        self.dev.rx_lo = hz

    def set_sample_rate(self, hz: float) -> None:
        hz = int(hz)
        self.dev.sample_rate = hz
        self.dev.rx_rf_bandwidth = hz
        self.dev.rx_destroy_buffer()

    def set_gain_db(self, gain_db: float) -> None:
        # Pluto manual gain range is 0..70 dB.
        gain_db = int(max(0, min(70, int(gain_db))))
        self.dev.rx_hardwaregain_chan0 = gain_db

    def read_rx(self) -> np.ndarray:
        x = self.dev.rx()
        if isinstance(x, (list, tuple)):
            x = x[0]
        return x.astype("complex64")


def probe_pluto(uri: str) -> tuple[bool, Optional[str]]:
    """Attempt to create a Pluto connection for a URI."""

    try:
        dev = adi.Pluto(uri=uri)
        _ = dev.sample_rate
    except Exception as exc:  # pragma: no cover - hardware errors vary
        return False, str(exc)
    return True, None
