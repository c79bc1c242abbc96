"""Create the configured radio adapter.

Hardware drivers are imported on demand so pyadi-iio and pyrtlsdr are only
needed when that radio is actually selected.
"""

from __future__ import annotations

from sdr_panadapter.config import PanadapterConfig
from sdr_panadapter.radio.hardware import HardwareRadio
from sdr_panadapter.radio.simulated import SimulatedRadio


RADIO_KINDS = ("simulated", "rtlsdr", "pluto")


def open_radio(cfg: PanadapterConfig):
    kind = str(cfg.radio).lower()
    if kind == "simulated":
        return SimulatedRadio(cfg)
    if kind == "rtlsdr":
        from sdr_panadapter.radio.rtlsdr import RtlSdrDevice

        return HardwareRadio(RtlSdrDevice(cfg), cfg)
    if kind == "pluto":
        from sdr_panadapter.radio.pluto import PlutoDevice

        return HardwareRadio(PlutoDevice(cfg), cfg)
    raise ValueError(f"unknown radio {cfg.radio!r}; expected one of {', '.join(RADIO_KINDS)}")
