"""Radio adapter shared by the hardware front ends.

HardwareRadio implements SpectrumSource and DeviceControl on top of a small
device driver (``set_center_hz``, ``set_sample_rate``, ``set_gain_db``,
``read_rx``, ``close``) and a FrameReader thread.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

import numpy as np

from sdr_panadapter.config import PanadapterConfig
from sdr_panadapter.dsp.processor import SpectrumProcessor
from sdr_panadapter.radio.reader import FrameReader


logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str], None]


class HardwareRadio:
    def __init__(self, device, cfg: PanadapterConfig, on_error: Optional[ErrorCallback] = None):
        self.device = device
        self.name = str(getattr(device, "name", "radio"))
        self.cfg = cfg
        self.processor = SpectrumProcessor(cfg.fft_size, cfg.fft_window)
        self._reader: Optional[FrameReader] = None
        self._on_error = on_error
        self._bandwidth_hz: Optional[float] = None

    def set_error_callback(self, callback: Optional[ErrorCallback]) -> None:
        self._on_error = callback

    def acquire_spectrum_frame(self) -> Optional[np.ndarray]:
        if self._reader is None:
            return None
        return self._reader.take_latest()

    def set_center_frequency(self, hz: float) -> None:
        self.cfg.center_hz = float(hz)
        if self._reader is not None:
            self._reader.queue_config({"center_hz": float(hz)})
        else:
            self.device.set_center_hz(float(hz))

    def set_sample_rate(self, hz: float) -> None:
        self.cfg.sample_rate_hz = float(hz)
        if self._reader is not None:
            self._reader.queue_config({"sample_rate_hz": float(hz)})
        else:
            self.device.set_sample_rate(float(hz))

    def frequency_range_hz(self) -> Optional[Tuple[float, float]]:
        return self.device.frequency_range_hz()

    def set_bandwidth(self, hz: float) -> None:
        # No demodulator on these front ends; the value only feeds status.
        self._bandwidth_hz = float(hz)

    def start_receiving(self) -> None:
        if self.is_receiving():
            return
        self._reader = FrameReader(self.device, self.processor, error_cb=self._reader_failed)
        self._reader.start()
        logger.info("%s receiving at %.6f MHz", self.name, self.cfg.center_hz / 1e6)

    def stop_receiving(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None:
            reader.stop()
            reader.join(timeout=1.0)
            logger.info("%s stopped", self.name)

    def is_receiving(self) -> bool:
        return self._reader is not None and self._reader.running

    def close(self) -> None:
        self.stop_receiving()
        self.device.close()

    def _reader_failed(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)
