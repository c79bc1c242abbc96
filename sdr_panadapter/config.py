"""Application configuration defaults.

Defines the PanadapterConfig dataclass and default values. This module should
not import UI, radio or rendering classes; it stays focused on configuration
data only.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Bookmark:
    name: str
    frequency_hz: float
    mode: str


@dataclass(frozen=True)
class Preset:
    label: str
    frequency_hz: float


def _default_bookmarks() -> list:
    return [
        Bookmark("FM 91.5", 91_500_000.0, "WBFM"),
        Bookmark("AM 1010", 1_010_000.0, "AM"),
        Bookmark("Ham 145.5", 145_500_000.0, "NBFM"),
    ]


def _default_presets() -> list:
    return [
        Preset("88.5 MHz - FM Radio", 88_500_000.0),
        Preset("100.1 MHz - FM Radio", 100_100_000.0),
        Preset("107.9 MHz - FM Radio", 107_900_000.0),
        Preset("162.55 MHz - NOAA Weather", 162_550_000.0),
        Preset("145.0 MHz - Amateur Radio", 145_000_000.0),
    ]


@dataclass
class PanadapterConfig:
    """
    Configuration for the panadapter.

    Notes
    Span is the sampled bandwidth divided by the zoom factor.
    Frames always cover the full sample rate around the center frequency.
    """

    # Radio backend: "simulated", "rtlsdr" or "pluto".
    radio: str = "simulated"
    uri: str = "ip:192.168.2.1"
    device_index: int = 0

    # Tuning.
    center_hz: float = 100_000_000.0
    sample_rate_hz: float = 2_048_000.0
    gain_db: Optional[float] = None
    demod_mode: str = "WBFM"

    # FFT size and window of frames produced by hardware adapters.
    fft_size: int = 1024
    fft_window: str = "Hann"

    # Render loop pacing (~60 Hz).
    frame_interval_ms: int = 16

    # Smoothing radii in source bins. The line plot is deliberately wider.
    plot_smooth_radius: float = 2.5
    waterfall_smooth_radius: float = 1.5

    # Upper bounds of the first five gradient segments.
    gradient_thresholds: Tuple[float, ...] = (0.15, 0.30, 0.50, 0.70, 0.85)

    # dB windows.
    contrast_min_db: float = -100.0
    contrast_max_db: float = 0.0
    range_min_db: float = -100.0
    range_max_db: float = 0.0

    # Zoom limits and wheel multipliers.
    zoom_min: float = 1.0
    zoom_max: float = 100.0
    zoom_in_factor: float = 1.25
    zoom_out_factor: float = 0.8

    # Wheel tuning steps.
    wheel_step_hz: float = 10_000.0
    fine_step_hz: float = 100.0
    button_step_hz: float = 100_000.0
    home_frequency_hz: float = 100_100_000.0

    # Scanner defaults (FM broadcast band).
    scanner_start_hz: float = 88_000_000.0
    scanner_end_hz: float = 108_000_000.0
    scanner_step_hz: float = 100_000.0
    scanner_interval_ms: int = 1000

    # IF view covers bins 400..624 of a 1024-bin frame.
    if_fraction: float = 224.0 / 1024.0

    # Pixel layout.
    plot_label_margin_px: int = 25
    waterfall_scale_px: int = 18

    # Sample rates offered by the cycle button.
    sample_rate_cycle_hz: Tuple[float, ...] = (
        1_024_000.0,
        1_400_000.0,
        1_800_000.0,
        2_048_000.0,
        2_400_000.0,
        2_800_000.0,
        3_200_000.0,
    )

    bookmarks: list = field(default_factory=_default_bookmarks)
    presets: list = field(default_factory=_default_presets)

    log_level: str = "INFO"
