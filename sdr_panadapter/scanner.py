"""Frequency scanner state machine.

The scanner steps the center frequency across a band on its own timer and
tunes through the same callback manual tuning uses. It only runs while the
radio is receiving.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from sdr_panadapter.scheduling import Scheduler, TimerHandle


logger = logging.getLogger(__name__)

INTERVAL_MIN_MS = 100
INTERVAL_MAX_MS = 5000


class ScannerState(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"


@dataclass(frozen=True)
class ScannerConfig:
    enabled: bool = False
    start_hz: float = 88_000_000.0
    end_hz: float = 108_000_000.0
    step_hz: float = 100_000.0
    current_hz: float = 88_000_000.0
    interval_ms: int = 1000


def normalize_config(cfg: ScannerConfig) -> ScannerConfig:
    """Clamp interval and step and keep ``start <= current < end``."""
    start = max(0.0, float(cfg.start_hz))
    end = max(start, float(cfg.end_hz))
    step = max(1.0, abs(float(cfg.step_hz)))
    interval = int(max(INTERVAL_MIN_MS, min(INTERVAL_MAX_MS, int(cfg.interval_ms))))
    current = float(cfg.current_hz)
    if current < start or current >= end:
        current = start
    return replace(
        cfg,
        start_hz=start,
        end_hz=end,
        step_hz=step,
        current_hz=current,
        interval_ms=interval,
    )


def next_frequency(cfg: ScannerConfig) -> float:
    current = cfg.current_hz + cfg.step_hz
    if current >= cfg.end_hz:
        return cfg.start_hz
    return current


class ScannerEngine:
    def __init__(
        self,
        scheduler: Scheduler,
        tune: Callable[[float], None],
        is_receiving: Callable[[], bool],
        config: Optional[ScannerConfig] = None,
    ):
        self._scheduler = scheduler
        self._tune = tune
        self._is_receiving = is_receiving
        self._config = normalize_config(config or ScannerConfig())
        self._timer: Optional[TimerHandle] = None
        self._state = ScannerState.IDLE

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def config(self) -> ScannerConfig:
        return self._config

    def configure(self, **updates) -> ScannerConfig:
        """Apply field updates; an ``enabled`` update starts or stops the scan."""
        enabled = updates.pop("enabled", None)
        was_scanning = self._state is ScannerState.SCANNING
        self._config = normalize_config(replace(self._config, **updates))
        if enabled is not None:
            self.set_enabled(bool(enabled))
        # A scan started just now is already on the new interval.
        if was_scanning and self._state is ScannerState.SCANNING and "interval_ms" in updates:
            self._cancel()
            self._schedule()
        return self._config

    def set_enabled(self, enabled: bool) -> None:
        self._config = replace(self._config, enabled=bool(enabled))
        self.sync()

    def sync(self) -> None:
        """Re-evaluate IDLE/SCANNING after the enable flag or receiving state changed."""
        should_scan = self._config.enabled and self._is_receiving()
        if should_scan and self._state is ScannerState.IDLE:
            self._state = ScannerState.SCANNING
            logger.info(
                "scanner started %.3f-%.3f MHz step %.1f kHz every %d ms",
                self._config.start_hz / 1e6,
                self._config.end_hz / 1e6,
                self._config.step_hz / 1e3,
                self._config.interval_ms,
            )
            self._schedule()
        elif not should_scan and self._state is ScannerState.SCANNING:
            self._cancel()
            self._state = ScannerState.IDLE
            logger.info("scanner stopped at %.3f MHz", self._config.current_hz / 1e6)

    def tick(self) -> None:
        self._timer = None
        if self._state is not ScannerState.SCANNING:
            return
        if not self._is_receiving():
            self._state = ScannerState.IDLE
            logger.info("scanner idle: radio stopped receiving")
            return
        self._config = replace(self._config, current_hz=next_frequency(self._config))
        try:
            self._tune(self._config.current_hz)
        finally:
            self._schedule()

    def _schedule(self) -> None:
        self._timer = self._scheduler.call_later(self._config.interval_ms / 1000.0, self.tick)

    def _cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
