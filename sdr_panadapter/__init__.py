"""Spectrum, waterfall and tuning views for SDR receivers."""

__version__ = "0.3.0"
