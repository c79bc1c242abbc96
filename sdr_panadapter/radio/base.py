"""Capability interfaces between the panadapter core and a radio.

The core only ever talks to a radio through SpectrumSource and DeviceControl.
Adapters that lack a feature implement it as a no-op here, at the boundary.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Tuple

import numpy as np


# Value some front ends emit for bins with no data yet.
SENTINEL_DB = -100.0


class SpectrumSource(Protocol):
    def acquire_spectrum_frame(self) -> Optional[np.ndarray]:
        """Latest finished dB frame, or None when nothing new is ready. Never blocks."""
        ...


class DeviceControl(Protocol):
    def set_center_frequency(self, hz: float) -> None: ...

    def set_sample_rate(self, hz: float) -> None: ...

    def set_bandwidth(self, hz: float) -> None: ...

    def start_receiving(self) -> None: ...

    def stop_receiving(self) -> None: ...

    def is_receiving(self) -> bool: ...

    def frequency_range_hz(self) -> Optional[Tuple[float, float]]:
        """(low, high) LO limits in Hz, or None when the radio tunes anywhere."""
        ...


class Radio(SpectrumSource, DeviceControl, Protocol):
    name: str

    def close(self) -> None: ...

    def set_error_callback(self, callback: Optional[Callable[[str], None]]) -> None:
        """Failures on a background reader are reported here instead of raised."""
        ...
