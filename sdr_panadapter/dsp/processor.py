"""Power spectrum computation for hardware radios.

Turns a buffer of complex I/Q samples into one dB frame. This module must not
import UI or radio classes; it is purely numerical.
"""

from __future__ import annotations

import numpy as np


class SpectrumProcessor:
    """
    Windowed FFT power estimate.

    Averages every full FFT segment that fits in the buffer and returns the
    fftshifted result in dBFS, so bin 0 is the lowest frequency.
    """

    WINDOWS = ("Hann", "Blackman Harris")

    def __init__(self, fft_size: int, window_name: str = "Hann"):
        self.fft_size = int(fft_size)
        self.window_name = window_name
        self.window = self._make_window(self.fft_size, self.window_name)
        self._update_window_stats()

    def _make_window(self, n: int, name: str) -> np.ndarray:
        if name == "Blackman Harris":
            a0, a1, a2, a3 = 0.35875, 0.48829, 0.14128, 0.01168
            idx = np.arange(n)
            w = (
                a0
                - a1 * np.cos(2.0 * np.pi * idx / (n - 1))
                + a2 * np.cos(4.0 * np.pi * idx / (n - 1))
                - a3 * np.cos(6.0 * np.pi * idx / (n - 1))
            )
            return w.astype(np.float32)
        return np.hanning(n).astype(np.float32)

    def _update_window_stats(self) -> None:
        # Coherent gain keeps dBFS stable across windows.
        self.coherent_gain = float(np.sum(self.window) / len(self.window))

    def power_db(self, x: np.ndarray, dc_remove: bool = True) -> np.ndarray:
        n = self.fft_size
        x = np.asarray(x, dtype=np.complex64)
        if len(x) < n:
            pad = np.zeros(n, dtype=np.complex64)
            pad[: len(x)] = x
            x = pad
        if dc_remove:
            x = x - np.mean(x)

        count = len(x) // n
        segments = x[: count * n].reshape(count, n) * self.window
        spectrum = np.fft.fftshift(np.fft.fft(segments, axis=1), axes=1)
        power = (np.abs(spectrum) / (n * self.coherent_gain)) ** 2
        power = np.mean(power, axis=0)
        return (10.0 * np.log10(np.maximum(power, 1e-20))).astype(np.float32)

