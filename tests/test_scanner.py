import pytest

from sdr_panadapter.scanner import (
    ScannerConfig,
    ScannerEngine,
    ScannerState,
    next_frequency,
    normalize_config,
)


class _Radio:
    def __init__(self, receiving: bool = True):
        self.receiving = receiving
        self.tuned = []

    def tune(self, hz: float) -> None:
        self.tuned.append(hz)

    def is_receiving(self) -> bool:
        return self.receiving


def _scanner(scheduler, receiving: bool = True, **cfg):
    radio = _Radio(receiving)
    scanner = ScannerEngine(scheduler, radio.tune, radio.is_receiving, ScannerConfig(**cfg))
    return scanner, radio


def test_normalize_clamps_interval_and_current() -> None:
    cfg = normalize_config(ScannerConfig(interval_ms=10, current_hz=50e6))
    assert cfg.interval_ms == 100
    assert cfg.current_hz == cfg.start_hz
    assert normalize_config(ScannerConfig(interval_ms=60_000)).interval_ms == 5000
    assert normalize_config(ScannerConfig(current_hz=108e6)).current_hz == 88e6


def test_next_frequency_wraps_to_start() -> None:
    assert next_frequency(ScannerConfig(current_hz=107.95e6)) == 88e6
    assert next_frequency(ScannerConfig(current_hz=88e6)) == pytest.approx(88.1e6)


def test_scans_on_interval_while_receiving(scheduler) -> None:
    scanner, radio = _scanner(scheduler)
    scanner.set_enabled(True)
    assert scanner.state is ScannerState.SCANNING
    scheduler.advance(0.999)
    assert radio.tuned == []
    scheduler.advance(0.001)
    assert radio.tuned == [pytest.approx(88.1e6)]
    scheduler.advance(2.0)
    assert len(radio.tuned) == 3
    assert scanner.config.current_hz == pytest.approx(88.3e6)


def test_wraps_at_end_of_band(scheduler) -> None:
    scanner, radio = _scanner(scheduler, current_hz=107.95e6)
    scanner.set_enabled(True)
    scheduler.advance(1.0)
    assert radio.tuned == [88e6]


def test_stays_idle_when_not_receiving(scheduler) -> None:
    scanner, radio = _scanner(scheduler, receiving=False)
    scanner.set_enabled(True)
    assert scanner.state is ScannerState.IDLE
    assert scheduler.pending == []

    radio.receiving = True
    scanner.sync()
    assert scanner.state is ScannerState.SCANNING


def test_goes_idle_when_radio_stops(scheduler) -> None:
    scanner, radio = _scanner(scheduler)
    scanner.set_enabled(True)
    radio.receiving = False
    scheduler.advance(1.0)
    assert radio.tuned == []
    assert scanner.state is ScannerState.IDLE
    assert scheduler.pending == []


def test_disable_cancels_timer(scheduler) -> None:
    scanner, radio = _scanner(scheduler)
    scanner.set_enabled(True)
    scanner.configure(enabled=False)
    assert scanner.state is ScannerState.IDLE
    scheduler.advance(5.0)
    assert radio.tuned == []


def test_interval_change_reschedules(scheduler) -> None:
    scanner, radio = _scanner(scheduler)
    scanner.set_enabled(True)
    cfg = scanner.configure(interval_ms=200)
    assert cfg.interval_ms == 200
    scheduler.advance(0.2)
    assert len(radio.tuned) == 1


def test_interval_change_with_enabled_flag_reschedules(scheduler) -> None:
    scanner, radio = _scanner(scheduler)
    scanner.set_enabled(True)
    scheduler.advance(0.5)
    scanner.configure(enabled=True, interval_ms=200)
    assert len(scheduler.pending) == 1
    scheduler.advance(0.2)
    assert len(radio.tuned) == 1
    scheduler.advance(0.2)
    assert len(radio.tuned) == 2


def test_enable_with_interval_schedules_once(scheduler) -> None:
    scanner, radio = _scanner(scheduler)
    scanner.configure(enabled=True, interval_ms=300)
    assert scanner.state is ScannerState.SCANNING
    assert len(scheduler.pending) == 1
    scheduler.advance(0.3)
    assert len(radio.tuned) == 1


def test_tune_failure_keeps_scanning(scheduler) -> None:
    def broken(hz):
        raise RuntimeError("device busy")

    scanner = ScannerEngine(scheduler, broken, lambda: True)
    scanner.set_enabled(True)
    with pytest.raises(RuntimeError):
        scheduler.advance(1.0)
    assert scanner.state is ScannerState.SCANNING
    assert len(scheduler.pending) == 1
