import pytest

from conftest import FakeRadio, noisy_frame
from sdr_panadapter.engine import Engine
from sdr_panadapter.protocol import (
    EngineErrorFrame,
    EnginePlotFrame,
    EngineStatusFrame,
    EngineWaterfallFrame,
)
from sdr_panadapter.render_loop import View
from sdr_panadapter.scanner import ScannerState


@pytest.fixture
def engine(cfg, scheduler) -> Engine:
    eng = Engine(cfg, scheduler, radio_factory=FakeRadio)
    eng.set_surface_size(View.SPECTRUM, 1024, 400)
    eng.set_surface_size(View.WATERFALL, 1024, 100)
    eng.set_surface_size(View.IF, 224, 200)
    return eng


def _of_type(frames, kind):
    return [f for f in frames if isinstance(f, kind)]


def test_connect_and_start_receiving(engine) -> None:
    frames = []
    engine.subscribe(frames.append)
    assert not engine.connected
    assert engine.start_receiving()
    assert engine.connected
    assert engine.is_receiving()
    assert engine.loop.running
    assert engine.radio.bandwidth_hz == 200_000.0
    status = _of_type(frames, EngineStatusFrame)[-1]
    assert status.connected and status.receiving
    assert status.message == "receiving"

    assert engine.toggle_receiving() is False
    assert not engine.radio.receiving
    assert not engine.loop.running


def test_connect_failure_reports_error(cfg, scheduler) -> None:
    def broken(cfg):
        raise RuntimeError("no device found")

    engine = Engine(cfg, scheduler, radio_factory=broken)
    frames = []
    engine.subscribe(frames.append)
    assert not engine.connect()
    assert not engine.start_receiving()
    error = engine.last_error
    assert error.error_code == "radio_connect_failed"
    assert error.message == "no device found"
    assert _of_type(frames, EngineStatusFrame)[-1].message == "connection failed"


def test_tune_forwards_to_radio(engine, cfg) -> None:
    engine.connect()
    engine.tune(101_234_567.6)
    assert engine.radio.center_hz == 101_234_568
    assert cfg.center_hz == 101_234_568
    engine.step_up()
    assert engine.state.center_frequency_hz == 101_334_568
    engine.step_down()
    engine.step_down()
    assert engine.radio.center_hz == 101_134_568
    engine.reset_frequency()
    assert engine.radio.center_hz == 100_100_000


def test_click_on_spectrum_and_if_views(engine) -> None:
    engine.click(View.SPECTRUM, 768)
    assert engine.state.center_frequency_hz == 100_512_000

    engine.tune(100e6)
    # Column 0 of the IF slice is bin 400 of the full frame.
    engine.click(View.IF, 0)
    expected = 100e6 - 1.024e6 + 400 * (2.048e6 / 1024)
    assert engine.state.center_frequency_hz == pytest.approx(expected, abs=1.0)

    engine.set_surface_size(View.IF, 0, 0)
    before = engine.state
    assert engine.click(View.IF, 10) == before
    assert engine.hover(View.IF, 10) is None


def test_if_view_ignores_zoom_and_drag(engine) -> None:
    engine.wheel(View.IF, -120, 100, ctrl=True)
    assert engine.state.zoom_factor == 1.0
    assert engine.state.center_frequency_hz == 100e6 + 10_000

    engine.drag_begin(View.IF, 50, pointer_id=3)
    engine.drag_move(View.IF, 150, pointer_id=3)
    assert engine.state.center_frequency_hz == 100e6 + 10_000

    engine.wheel(View.SPECTRUM, -120, 512, ctrl=True)
    assert engine.state.zoom_factor == pytest.approx(1.25)


def test_drag_on_spectrum_pans(engine) -> None:
    engine.drag_begin(View.SPECTRUM, 600, pointer_id=1)
    engine.drag_move(View.SPECTRUM, 500, pointer_id=1)
    assert engine.state.center_frequency_hz == pytest.approx(100e6 + 200_000, abs=1.0)
    engine.drag_end(View.SPECTRUM, pointer_id=1)
    engine.drag_move(View.SPECTRUM, 0, pointer_id=1)
    assert engine.state.center_frequency_hz == pytest.approx(100e6 + 200_000, abs=1.0)


def test_hover_reports_frequency(engine) -> None:
    assert engine.hover(View.SPECTRUM, 512) == pytest.approx(100e6)
    assert engine.hover(View.IF, 112) == pytest.approx(100e6)
    assert engine.hover(View.IF, 0) == pytest.approx(100e6 - 224_000)


def test_demod_modes(engine) -> None:
    engine.connect()
    assert engine.set_demod_mode("nbfm") == "NBFM"
    assert engine.radio.bandwidth_hz == 12_500.0
    assert engine.plot_bandwidth() == 12_500.0

    engine.set_demod_mode("RAW")
    assert engine.plot_bandwidth() is None
    assert engine.radio.bandwidth_hz == 2.048e6
    assert engine.status().bandwidth_hz is None

    with pytest.raises(ValueError):
        engine.set_demod_mode("FT8")
    assert engine.demod_mode == "RAW"


def test_cycle_sample_rate(engine) -> None:
    engine.connect()
    engine.cycle_sample_rate()
    assert engine.state.sample_rate_hz == 2.4e6
    assert engine.radio.sample_rate_hz == 2.4e6
    assert engine.radio.bandwidth_hz == 200_000.0

    engine.set_sample_rate(3.2e6)
    engine.cycle_sample_rate()
    assert engine.state.sample_rate_hz == 1.024e6

    engine.set_sample_rate(2.5e6)
    engine.cycle_sample_rate()
    assert engine.state.sample_rate_hz == 1.024e6


def test_presets_and_bookmarks(engine) -> None:
    engine.connect()
    state = engine.tune_preset(3)
    assert state.center_frequency_hz == 162_550_000
    assert engine.is_receiving()

    engine.tune_bookmark("AM 1010")
    assert engine.demod_mode == "AM"
    assert engine.radio.center_hz == 1_010_000
    with pytest.raises(KeyError):
        engine.tune_bookmark("nope")
    with pytest.raises(IndexError):
        engine.tune_preset(99)


def test_preset_without_radio_only_tunes(engine) -> None:
    engine.tune_preset(0)
    assert engine.state.center_frequency_hz == 88_500_000
    assert not engine.connected


def test_radio_error_is_reported(engine) -> None:
    frames = []
    engine.subscribe(frames.append)
    engine.start_receiving()
    engine.radio.fail("usb unplugged")
    error = _of_type(frames, EngineErrorFrame)[-1]
    assert error.error_code == "radio_error"
    assert error.message == "usb unplugged"
    status = _of_type(frames, EngineStatusFrame)[-1]
    assert status.message == "radio error"
    assert not status.receiving


def test_scanner_runs_through_engine(engine, scheduler) -> None:
    engine.set_scanner_enabled(True)
    assert engine.scanner.state is ScannerState.IDLE

    engine.start_receiving()
    assert engine.scanner.state is ScannerState.SCANNING
    scheduler.advance(1.0)
    assert engine.radio.center_hz == pytest.approx(88.1e6)
    assert engine.status().scanner_current_hz == pytest.approx(88.1e6)

    engine.stop_receiving()
    assert engine.scanner.state is ScannerState.IDLE
    assert engine.status().scanner_enabled


def test_render_now_emits_plot_and_waterfall_frames(engine) -> None:
    frames = []
    engine.subscribe(frames.append)
    engine.connect()
    engine.radio.push(noisy_frame())
    engine.render_now()

    plots = _of_type(frames, EnginePlotFrame)
    assert {p.view for p in plots} == {"spectrum", "if"}
    spectrum = next(p for p in plots if p.view == "spectrum")
    assert spectrum.trace.shape == (1024,)
    assert spectrum.bandwidth_hz == 200_000.0
    assert spectrum.freq_start_hz == pytest.approx(98.976e6)
    if_plot = next(p for p in plots if p.view == "if")
    assert if_plot.freq_stop_hz - if_plot.freq_start_hz == pytest.approx(448_000)

    rows = _of_type(frames, EngineWaterfallFrame)
    assert len(rows) == 1
    assert rows[0].row_rgb.shape == (1024, 3)
    assert rows[0].height == 100

    # Nothing new and nothing changed: no plot frames.
    frames.clear()
    engine.render_now()
    assert _of_type(frames, EnginePlotFrame) == []


def test_subscriber_failure_is_isolated(engine) -> None:
    seen = []

    def broken(frame):
        raise RuntimeError("closed socket")

    engine.subscribe(broken)
    engine.subscribe(seen.append)
    engine.tune(99e6)
    assert seen
    engine.unsubscribe(broken)
    engine.unsubscribe(broken)


def test_disconnect_closes_radio(engine) -> None:
    engine.start_receiving()
    radio = engine.radio
    engine.disconnect()
    assert radio.closed
    assert not engine.connected
    assert engine.status().message == "disconnected"

    assert engine.reconnect()
    assert engine.connected
    assert engine.radio is not radio


def test_connect_clamps_center_into_tuner_range(cfg, scheduler) -> None:
    engine = Engine(cfg, scheduler, radio_factory=lambda c: FakeRadio(c, (325e6, 3.8e9)))
    engine.set_surface_size(View.SPECTRUM, 1024, 400)
    assert engine.state.center_frequency_hz == 100e6

    assert engine.connect()
    assert engine.state.center_frequency_hz == 325e6
    assert engine.radio.center_hz == 325e6
    assert engine.status().center_hz == 325e6

    engine.tune(5e9)
    assert engine.radio.center_hz == engine.state.center_frequency_hz == 3.8e9
    engine.click(View.SPECTRUM, 1023.0)
    assert engine.state.center_frequency_hz == 3.8e9

    engine.disconnect()
    engine.tune(100e6)
    assert engine.state.center_frequency_hz == 100e6
