from typing import Callable, List, Optional, Tuple

import numpy as np
import pytest

from sdr_panadapter.config import PanadapterConfig


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by the test: timers only fire inside ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[ManualTimer] = []

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + float(delay_s), callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[ManualTimer]:
        return [t for t in self.timers if not (t.cancelled or t.fired)]

    def advance(self, seconds: float) -> None:
        end = self.now + float(seconds)
        while True:
            due = [t for t in self.pending if t.due <= end + 1e-12]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = max(self.now, timer.due)
            timer.fired = True
            timer.callback()
        self.now = end


class FakeSource:
    def __init__(self, frames=()):
        self.frames = list(frames)

    def push(self, frame) -> None:
        self.frames.append(frame)

    def acquire_spectrum_frame(self) -> Optional[np.ndarray]:
        if not self.frames:
            return None
        return self.frames.pop(0)


class FakeRadio(FakeSource):
    name = "fake"

    def __init__(self, cfg: PanadapterConfig, frequency_range: Optional[Tuple[float, float]] = None):
        super().__init__()
        self.frequency_range = frequency_range
        self.center_hz = cfg.center_hz
        self.sample_rate_hz = cfg.sample_rate_hz
        self.bandwidth_hz: Optional[float] = None
        self.receiving = False
        self.closed = False
        self.error_cb = None

    def set_error_callback(self, callback) -> None:
        self.error_cb = callback

    def frequency_range_hz(self) -> Optional[Tuple[float, float]]:
        return self.frequency_range

    def set_center_frequency(self, hz: float) -> None:
        self.center_hz = hz

    def set_sample_rate(self, hz: float) -> None:
        self.sample_rate_hz = hz

    def set_bandwidth(self, hz: float) -> None:
        self.bandwidth_hz = hz

    def start_receiving(self) -> None:
        self.receiving = True

    def stop_receiving(self) -> None:
        self.receiving = False

    def is_receiving(self) -> bool:
        return self.receiving

    def close(self) -> None:
        self.closed = True
        self.receiving = False

    def fail(self, message: str) -> None:
        self.receiving = False
        self.error_cb(message)


def tone_frame(n: int = 1024, peak_bin: int = 512, floor_db: float = -90.0, peak_db: float = -20.0) -> np.ndarray:
    frame = np.full(n, floor_db, dtype=np.float32)
    frame[peak_bin] = peak_db
    return frame


def noisy_frame(n: int = 1024, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return (-90.0 + rng.uniform(0.0, 5.0, n)).astype(np.float32)


@pytest.fixture
def cfg() -> PanadapterConfig:
    return PanadapterConfig()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()
