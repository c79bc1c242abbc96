import numpy as np
import pytest

from conftest import FakeSource, noisy_frame, tone_frame
from sdr_panadapter.radio.base import SENTINEL_DB
from sdr_panadapter.render_loop import RenderLoop, View, check_frame
from sdr_panadapter.view.plot import peak_column
from sdr_panadapter.viewport import ViewportController


def _loop(cfg, scheduler, frames=()):
    source = FakeSource(frames)
    loop = RenderLoop(source, ViewportController(cfg), scheduler, cfg)
    loop.set_surface_size(View.SPECTRUM, 1024, 400)
    loop.set_surface_size(View.WATERFALL, 1024, 120)
    loop.set_surface_size(View.IF, 224, 200)
    return loop, source


def test_check_frame_reasons() -> None:
    assert check_frame(tone_frame()) is None
    assert check_frame(np.zeros(0)) == "empty frame"
    bad = tone_frame()
    bad[3] = np.nan
    assert check_frame(bad) == "non-finite values"
    sentinel = np.full(1024, SENTINEL_DB)
    sentinel[:3] = -50.0
    assert check_frame(sentinel) == "only 3 non-sentinel bins"
    assert check_frame(np.full(1024, -50.0)).startswith("flat frame")


def test_valid_frame_renders_every_view(cfg, scheduler) -> None:
    loop, _ = _loop(cfg, scheduler, [tone_frame(peak_bin=512)])
    result = loop.render_once()
    assert result.fresh
    assert result.errors == {}
    assert result.spectrum.has_trace
    assert result.if_spectrum.has_trace
    assert result.waterfall.shape == (120, 1024, 3)
    assert result.waterfall_row.shape == (1024, 3)
    assert abs(peak_column(result.spectrum) - 512.0) <= 1.0
    assert loop.frames_rendered == 1


def test_peak_block_end_to_end(cfg, scheduler) -> None:
    frame = np.full(1024, SENTINEL_DB, dtype=np.float32)
    frame[500:525] = -20.0
    loop, _ = _loop(cfg, scheduler, [frame])
    result = loop.render_once()
    assert result.fresh
    axis = loop.controller.axis(1024)
    peak_hz = 100e6 - 1.024e6 + 512 * (2.048e6 / 1024)
    assert abs(peak_column(result.spectrum) - axis.frequency_to_pixel(peak_hz)) <= 1.0


def test_invalid_frames_reuse_last_good_frame(cfg, scheduler) -> None:
    good = tone_frame(peak_bin=300)
    loop, source = _loop(cfg, scheduler, [good])
    loop.render_once()

    source.push(np.full(1024, SENTINEL_DB, dtype=np.float32))
    result = loop.render_once()
    assert not result.fresh
    assert result.waterfall_row is None
    assert loop.frames_invalid == 1
    assert abs(peak_column(result.spectrum) - 300.0) <= 1.0
    np.testing.assert_array_equal(loop.last_frame, good)

    result = loop.render_once()
    assert not result.fresh
    assert loop.frames_empty == 1
    assert loop.waterfall.row_count == 1


def test_no_frame_yet_draws_empty_views(cfg, scheduler) -> None:
    loop, _ = _loop(cfg, scheduler)
    result = loop.render_once()
    assert not result.fresh
    assert not result.spectrum.has_trace
    assert result.waterfall_row is None
    assert loop.waterfall.row_count == 0


def test_failing_view_does_not_block_others(cfg, scheduler, monkeypatch) -> None:
    loop, _ = _loop(cfg, scheduler, [noisy_frame()])

    def broken(state):
        raise RuntimeError("boom")

    monkeypatch.setattr(loop.waterfall, "image", broken)
    result = loop.render_once()
    assert result.errors == {"waterfall": "boom"}
    assert result.spectrum is not None
    assert result.if_spectrum is not None
    assert result.waterfall is None
    assert loop.waterfall.size == (0, 0)


def test_zero_surfaces_are_skipped(cfg, scheduler) -> None:
    loop, _ = _loop(cfg, scheduler, [noisy_frame()])
    loop.set_surface_size(View.SPECTRUM, 0, 400)
    loop.set_surface_size(View.WATERFALL, 1024, 0)
    result = loop.render_once()
    assert result.spectrum is None
    assert result.waterfall is None
    assert result.if_spectrum is not None
    assert loop.surface_size(View.SPECTRUM) == (0, 400)


def test_bandwidth_markers_come_from_callback(cfg, scheduler) -> None:
    source = FakeSource([tone_frame()])
    loop = RenderLoop(source, ViewportController(cfg), scheduler, cfg, bandwidth=lambda: 200e3)
    loop.set_surface_size(View.SPECTRUM, 1024, 400)
    result = loop.render_once()
    assert "BW: 200.0 kHz" in [label.text for label in result.spectrum.labels]


def test_start_and_stop_drive_the_scheduler(cfg, scheduler) -> None:
    loop, source = _loop(cfg, scheduler, [noisy_frame(seed=i) for i in range(3)])
    seen = []
    loop.subscribe(seen.append)

    loop.start()
    loop.start()
    assert len(scheduler.pending) == 1
    scheduler.advance(0.0)
    assert len(seen) == 1
    scheduler.advance(cfg.frame_interval_ms / 1000.0)
    assert len(seen) == 2

    loop.stop()
    assert not loop.running
    scheduler.advance(1.0)
    assert len(seen) == 2


def test_subscriber_failure_is_isolated(cfg, scheduler) -> None:
    loop, _ = _loop(cfg, scheduler, [noisy_frame()])
    seen = []

    def broken(result):
        raise ValueError("bad subscriber")

    loop.subscribe(broken)
    loop.subscribe(seen.append)
    loop.render_once()
    assert len(seen) == 1

    loop.unsubscribe(seen.append)
    loop.render_once()
    assert len(seen) == 1


def test_set_source_forgets_last_frame(cfg, scheduler) -> None:
    loop, _ = _loop(cfg, scheduler, [noisy_frame()])
    loop.render_once()
    assert loop.last_frame is not None
    loop.set_source(FakeSource())
    assert loop.last_frame is None


@pytest.mark.parametrize("view", ["spectrum", "waterfall", "if"])
def test_surface_size_accepts_view_names(cfg, scheduler, view) -> None:
    loop, _ = _loop(cfg, scheduler)
    loop.set_surface_size(view, -5, 10)
    assert loop.surface_size(view) == (0, 10)
