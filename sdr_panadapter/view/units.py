"""Unit-scaled frequency text used by plot labels, overlays and readouts."""

from __future__ import annotations


def format_frequency(hz: float) -> str:
    """Axis label: ``x.xxx GHz``, ``x.xxx MHz``, ``x.x kHz`` or ``x Hz``."""
    if hz >= 1e9:
        return f"{hz / 1e9:.3f} GHz"
    if hz >= 1e6:
        return f"{hz / 1e6:.3f} MHz"
    if hz >= 1e3:
        return f"{hz / 1e3:.1f} kHz"
    return f"{hz:.0f} Hz"


def format_frequency_short(hz: float) -> str:
    """Compact waterfall scale label: ``x.xxG``, ``x.xxM`` or ``xk``."""
    if hz >= 1e9:
        return f"{hz / 1e9:.2f}G"
    if hz >= 1e6:
        return f"{hz / 1e6:.2f}M"
    if hz >= 1e3:
        return f"{hz / 1e3:.0f}k"
    return f"{hz:.0f}"


def format_span(hz: float) -> str:
    if hz >= 1e6:
        return f"{hz / 1e6:.2f} MHz"
    if hz >= 1e3:
        return f"{hz / 1e3:.1f} kHz"
    return f"{hz:.0f} Hz"


def format_mhz(hz: float, decimals: int = 6) -> str:
    return f"{hz / 1e6:.{decimals}f} MHz"
