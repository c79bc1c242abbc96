import threading
import time

import numpy as np
import pytest

from sdr_panadapter.radio.factory import open_radio
from sdr_panadapter.radio.hardware import HardwareRadio
from sdr_panadapter.radio.simulated import SimulatedRadio, Station
from sdr_panadapter.render_loop import check_frame


class FakeDevice:
    name = "fake-device"

    def __init__(self, fail_after: int = -1):
        self.center_hz = None
        self.sample_rate = None
        self.gain_db = None
        self.reads = 0
        self.closed = False
        self.fail_after = fail_after

    def frequency_range_hz(self):
        return (24e6, 1.766e9)

    def set_center_hz(self, hz: float) -> None:
        self.center_hz = hz

    def set_sample_rate(self, hz: float) -> None:
        self.sample_rate = hz

    def set_gain_db(self, gain_db: float) -> None:
        self.gain_db = gain_db

    def read_rx(self) -> np.ndarray:
        self.reads += 1
        if self.reads == self.fail_after:
            raise IOError("USB transfer failed")
        time.sleep(0.002)
        idx = np.arange(4096)
        return (0.5 * np.exp(2j * np.pi * 0.25 * idx)).astype(np.complex64)

    def close(self) -> None:
        self.closed = True


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_simulated_radio_only_produces_frames_while_receiving(cfg) -> None:
    radio = SimulatedRadio(cfg, seed=1)
    assert radio.acquire_spectrum_frame() is None
    radio.start_receiving()
    frame = radio.acquire_spectrum_frame()
    assert frame.shape == (1024,)
    assert check_frame(frame) is None
    radio.close()
    assert not radio.is_receiving()


def test_simulated_station_shows_at_its_bin(cfg) -> None:
    station = Station(100_100_000.0, -20.0, 150_000.0)
    radio = SimulatedRadio(cfg, stations=[station], seed=2)
    radio.start_receiving()
    frames = np.stack([radio.synthesize() for _ in range(8)])
    # 100.1 MHz is 50 bins above the 100 MHz center at 2 kHz per bin.
    mean = frames.mean(axis=0)
    assert mean[562] > -40.0
    assert mean[562] > np.median(mean) + 30.0

    radio.set_center_frequency(140e6)
    assert np.median(radio.synthesize()) < -80.0


def test_factory_rejects_unknown_radio(cfg) -> None:
    assert isinstance(open_radio(cfg), SimulatedRadio)
    cfg.radio = "hackrf"
    with pytest.raises(ValueError, match="unknown radio"):
        open_radio(cfg)


def test_hardware_radio_tunes_device_directly_when_idle(cfg) -> None:
    device = FakeDevice()
    radio = HardwareRadio(device, cfg)
    radio.set_center_frequency(433.92e6)
    radio.set_sample_rate(1.024e6)
    assert device.center_hz == 433.92e6
    assert device.sample_rate == 1.024e6
    assert cfg.center_hz == 433.92e6
    assert radio.acquire_spectrum_frame() is None


def test_hardware_radio_reads_frames_in_background(cfg) -> None:
    device = FakeDevice()
    radio = HardwareRadio(device, cfg)
    radio.start_receiving()
    try:
        assert radio.is_receiving()
        assert _wait_for(lambda: radio._reader.frames_read > 0)
        frame = radio.acquire_spectrum_frame()
        assert frame.shape == (1024,)
        assert int(np.argmax(frame)) == 768

        radio.set_center_frequency(99e6)
        assert _wait_for(lambda: device.center_hz == 99e6)
    finally:
        radio.close()
    assert not radio.is_receiving()
    assert device.closed


def test_hardware_radio_reports_reader_failure(cfg) -> None:
    device = FakeDevice(fail_after=3)
    errors = []
    failed = threading.Event()

    def on_error(message: str) -> None:
        errors.append(message)
        failed.set()

    radio = HardwareRadio(device, cfg, on_error=on_error)
    radio.start_receiving()
    assert failed.wait(2.0)
    assert errors == ["USB transfer failed"]
    assert not radio.is_receiving()
    radio.close()


def test_hardware_radio_uses_configured_window(cfg) -> None:
    assert HardwareRadio(FakeDevice(), cfg).processor.window_name == "Hann"
    cfg.fft_window = "Blackman Harris"
    radio = HardwareRadio(FakeDevice(), cfg)
    assert radio.processor.window_name == "Blackman Harris"
    assert radio.frequency_range_hz() == (24e6, 1.766e9)


def test_simulated_radio_has_no_tuning_limits(cfg) -> None:
    assert SimulatedRadio(cfg).frequency_range_hz() is None
