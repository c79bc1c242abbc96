"""Synthetic radio used when no hardware is selected.

Produces a noisy floor with sparse random spurs plus a few fixed carriers at
absolute frequencies, so tuning and scanning visibly move the spectrum.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from sdr_panadapter.config import PanadapterConfig


@dataclass(frozen=True)
class Station:
    frequency_hz: float
    power_db: float
    width_hz: float


DEFAULT_STATIONS = (
    Station(88_500_000.0, -35.0, 150_000.0),
    Station(91_500_000.0, -30.0, 150_000.0),
    Station(100_100_000.0, -25.0, 150_000.0),
    Station(104_300_000.0, -40.0, 150_000.0),
    Station(107_900_000.0, -38.0, 150_000.0),
    Station(145_500_000.0, -55.0, 10_000.0),
    Station(162_550_000.0, -50.0, 12_000.0),
)

NOISE_FLOOR_DB = -90.0
NOISE_SPREAD_DB = 5.0
SPUR_PROBABILITY = 0.05
SPUR_MAX_DB = 30.0


class SimulatedRadio:
    name = "simulated"

    def __init__(
        self,
        cfg: PanadapterConfig,
        stations: Sequence[Station] = DEFAULT_STATIONS,
        seed: Optional[int] = None,
    ):
        self.cfg = cfg
        self.stations = tuple(stations)
        self.center_hz = float(cfg.center_hz)
        self.sample_rate_hz = float(cfg.sample_rate_hz)
        self.bandwidth_hz: Optional[float] = None
        self.fft_size = int(cfg.fft_size)
        self._rng = np.random.default_rng(seed)
        self._receiving = False

    def set_error_callback(self, callback) -> None:
        # Synthesis never fails in the background.
        return None

    def frequency_range_hz(self) -> None:
        return None

    def acquire_spectrum_frame(self) -> Optional[np.ndarray]:
        if not self._receiving:
            return None
        return self.synthesize()

    def synthesize(self) -> np.ndarray:
        n = self.fft_size
        frame = NOISE_FLOOR_DB + self._rng.uniform(0.0, NOISE_SPREAD_DB, n)
        spurs = self._rng.random(n) < SPUR_PROBABILITY
        frame[spurs] += self._rng.uniform(0.0, SPUR_MAX_DB, int(spurs.sum()))

        freqs = self.center_hz + (np.arange(n) / n - 0.5) * self.sample_rate_hz
        for st in self.stations:
            if abs(st.frequency_hz - self.center_hz) > self.sample_rate_hz:
                continue
            sigma = st.width_hz / 4.0
            bump = st.power_db + 3.0 * self._rng.standard_normal()
            shape = np.exp(-((freqs - st.frequency_hz) ** 2) / (2.0 * sigma * sigma))
            frame = np.maximum(frame, NOISE_FLOOR_DB + (bump - NOISE_FLOOR_DB) * shape)
        return frame.astype(np.float32)

    def set_center_frequency(self, hz: float) -> None:
        self.center_hz = float(hz)

    def set_sample_rate(self, hz: float) -> None:
        self.sample_rate_hz = max(1.0, float(hz))

    def set_bandwidth(self, hz: float) -> None:
        self.bandwidth_hz = float(hz)

    def start_receiving(self) -> None:
        self._receiving = True

    def stop_receiving(self) -> None:
        self._receiving = False

    def is_receiving(self) -> bool:
        return self._receiving

    def close(self) -> None:
        self._receiving = False
