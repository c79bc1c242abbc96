import numpy as np
import pytest

from conftest import noisy_frame, tone_frame
from sdr_panadapter.view.waterfall import (
    MARKER_RGB,
    SCALE_ALPHA,
    TICK_RGB,
    WaterfallBuffer,
    intensity,
)
from sdr_panadapter.viewport import DbRange, ViewportState


def _state(contrast_min: float = -100.0, center: float = 100e6) -> ViewportState:
    return ViewportState(
        center_frequency_hz=center,
        sample_rate_hz=2.048e6,
        zoom_factor=1.0,
        contrast_range=DbRange(contrast_min, 0.0),
        display_range=DbRange(-100.0, 0.0),
    )


def test_intensity_uses_range_and_contrast_curve() -> None:
    db = np.array([-150.0, -100.0, -50.0, 0.0, 20.0])
    linear = intensity(db, DbRange(-100.0, 0.0), DbRange(-50.0, 0.0))
    assert linear.tolist() == pytest.approx([0.0, 0.0, 0.5, 1.0, 1.0])

    bent = intensity(db, DbRange(-100.0, 0.0), DbRange(-100.0, 0.0))
    assert bent[2] == pytest.approx(np.sqrt(0.5))

    # Contrast near zero bottoms out at gamma 10.
    steep = intensity(db, DbRange(-100.0, 0.0), DbRange(0.0, 1.0))
    assert steep[2] == pytest.approx(0.5 ** 10)


def test_signal_below_display_range_is_black() -> None:
    buf = WaterfallBuffer()
    buf.ensure_size(64, 32)
    row = buf.compute_row(np.full(1024, -150.0), _state(contrast_min=-150.0))
    assert np.all(row == 0)


def test_push_appends_newest_row_at_bottom() -> None:
    buf = WaterfallBuffer()
    buf.ensure_size(128, 40)
    state = _state()
    first = tone_frame(peak_bin=100)
    second = tone_frame(peak_bin=900)
    assert buf.push(first, state)
    assert buf.push(second, state)
    assert buf.row_count == 2
    img = buf.ordered()
    assert np.array_equal(img[-1], buf.compute_row(second, state))
    assert np.array_equal(img[-2], buf.compute_row(first, state))
    assert np.array_equal(buf.row(0), img[-1])
    assert np.array_equal(buf.row(1), img[-2])


def test_ring_evicts_oldest_row_when_full() -> None:
    buf = WaterfallBuffer()
    buf.ensure_size(32, 4)
    state = _state()
    frames = [noisy_frame(seed=i) for i in range(6)]
    for frame in frames:
        buf.push(frame, state)
    assert buf.row_count == 4
    img = buf.ordered()
    for age, frame in enumerate(reversed(frames[-4:])):
        assert np.array_equal(img[-1 - age], buf.compute_row(frame, state))
    with pytest.raises(IndexError):
        buf.row(4)


def test_resize_reallocates_and_clears() -> None:
    buf = WaterfallBuffer()
    assert buf.ensure_size(64, 20)
    buf.push(noisy_frame(), _state())
    assert not buf.ensure_size(64, 20)
    assert buf.row_count == 1
    assert buf.ensure_size(80, 20)
    assert buf.row_count == 0
    assert buf.size == (80, 20)
    assert not buf.ordered().any()


def test_push_without_surface_is_ignored() -> None:
    buf = WaterfallBuffer()
    assert not buf.push(noisy_frame(), _state())
    assert buf.row_count == 0


def test_image_composites_scale_and_center_marker() -> None:
    buf = WaterfallBuffer(scale_height_px=18)
    buf.ensure_size(1024, 60)
    state = _state()
    for seed in range(60):
        buf.push(noisy_frame(seed=seed) + 60.0, state)
    stored = buf.ordered()
    img = buf.image(state)
    h = 60

    assert np.array_equal(img[: h - 18], stored[: h - 18])
    expected = (stored[h - 1, 300].astype(np.float32) * (1.0 - SCALE_ALPHA)).astype(np.uint8)
    assert np.array_equal(img[h - 1, 300], expected)

    assert tuple(img[h - 18, 0]) == TICK_RGB
    assert tuple(img[h - 15, 0]) == TICK_RGB

    for y in (h - 18, h - 1):
        assert tuple(img[y, 511]) == MARKER_RGB
        assert tuple(img[y, 512]) == MARKER_RGB
    assert tuple(img[h - 19, 512]) == tuple(stored[h - 19, 512])

    # The overlay is never written into the stored rows.
    assert np.array_equal(buf.ordered(), stored)


def test_scale_labels_follow_viewport() -> None:
    buf = WaterfallBuffer()
    buf.ensure_size(1024, 40)
    labels = buf.scale_labels(_state())
    assert len(labels) == 11
    assert labels[0] == (0.0, "98.98M")
    assert labels[5][1] == "100.00M"
    assert WaterfallBuffer().scale_labels(_state()) == []
