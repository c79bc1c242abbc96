"""Background I/Q reader for hardware radios.

Reads sample buffers off the host's event thread, turns each into a dB frame
and keeps only the newest one for the render loop to pick up. This module
must not import UI classes.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional

import numpy as np

from sdr_panadapter.dsp.processor import SpectrumProcessor


logger = logging.getLogger(__name__)


class FrameReader(threading.Thread):
    def __init__(
        self,
        device,
        proc: SpectrumProcessor,
        error_cb: Callable[[str], None],
        pace_s: float = 0.0,
    ):
        super().__init__(daemon=True, name=f"reader-{getattr(device, 'name', 'radio')}")
        self.device = device
        self.proc = proc
        self.pace_s = float(pace_s)
        self._error_cb = error_cb
        self._lock = threading.Lock()
        self._running = threading.Event()
        self._running.set()
        self._latest: Optional[np.ndarray] = None
        self.frames_read = 0
        # Tuning requests applied on the reader thread between buffers.
        self.pending_apply: Dict[str, float] = {}

    def stop(self) -> None:
        self._running.clear()

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def queue_config(self, updates: Dict[str, float]) -> None:
        # Coalesce so several quick retunes cost one device call.
        with self._lock:
            self.pending_apply.update(updates)

    def take_latest(self) -> Optional[np.ndarray]:
        with self._lock:
            frame, self._latest = self._latest, None
            return frame

    def _apply_pending(self) -> None:
        with self._lock:
            pending = dict(self.pending_apply)
            self.pending_apply.clear()
        if not pending:
            return
        sample_rate = pending.get("sample_rate_hz")
        if sample_rate is not None:
            self.device.set_sample_rate(sample_rate)
        center = pending.get("center_hz")
        if center is not None:
            self.device.set_center_hz(center)
        gain = pending.get("gain_db")
        if gain is not None:
            self.device.set_gain_db(gain)

    def run(self) -> None:
        logger.debug("reader started")
        while self._running.is_set():
            try:
                self._apply_pending()
                x = self.device.read_rx()
                frame = self.proc.power_db(x)
                with self._lock:
                    self._latest = frame
                self.frames_read += 1
                if self.pace_s > 0:
                    time.sleep(self.pace_s)
            except Exception as exc:
                logger.exception("reader failed")
                self._running.clear()
                self._error_cb(str(exc))
                return
        logger.debug("reader stopped after %d frames", self.frames_read)
