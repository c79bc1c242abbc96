"""RTL-SDR device driver (pyrtlsdr)."""

from __future__ import annotations

import numpy as np
from rtlsdr import RtlSdr

from sdr_panadapter.config import PanadapterConfig


# R820T/R820T2 tuner range.
RTL_MIN_HZ = 24_000_000
RTL_MAX_HZ = 1_766_000_000


class RtlSdrDevice:
    """Convenience wrapper around pyrtlsdr.RtlSdr."""

    name = "rtlsdr"

    def __init__(self, cfg: PanadapterConfig):
        self.cfg = cfg
        self.dev = RtlSdr(device_index=int(cfg.device_index))
        self.dev.sample_rate = float(cfg.sample_rate_hz)
        if cfg.gain_db is None:
            self.dev.gain = "auto"
        else:
            self.dev.gain = float(cfg.gain_db)
        self.set_center_hz(cfg.center_hz)

    def frequency_range_hz(self) -> tuple[float, float]:
        return float(RTL_MIN_HZ), float(RTL_MAX_HZ)

    def set_center_hz(self, hz: float) -> None:
        self.dev.center_freq = float(max(RTL_MIN_HZ, min(RTL_MAX_HZ, hz)))

    def set_sample_rate(self, hz: float) -> None:
        self.dev.sample_rate = float(hz)

    def set_gain_db(self, gain_db: float) -> None:
        self.dev.gain = float(gain_db)

    def read_rx(self) -> np.ndarray:
        # Four FFTs per read are averaged into one frame.
        return np.asarray(self.dev.read_samples(int(self.cfg.fft_size) * 4), dtype=np.complex64)

    def close(self) -> None:
        self.dev.close()
