import numpy as np

from sdr_panadapter.view.resample import FLOOR_DB, resample_spectrum


def test_constant_input_stays_constant() -> None:
    out = resample_spectrum(np.full(1024, -42.0), 300)
    assert out.shape == (300,)
    assert out.dtype == np.float32
    assert np.allclose(out, -42.0, atol=1e-4)


def test_degenerate_sizes() -> None:
    assert resample_spectrum(np.zeros(16), 0).size == 0
    out = resample_spectrum(np.zeros(0), 8)
    assert np.all(out == FLOOR_DB)


def test_single_bin_peak_lands_on_matching_column() -> None:
    data = np.full(1024, -90.0)
    data[512] = -10.0
    out = resample_spectrum(data, 1024, radius=2.5)
    assert int(np.argmax(out)) == 512
    # Smoothing spreads the peak but keeps it symmetric.
    assert np.isclose(out[511], out[513])
    assert out[512] < -10.0


def test_downsampling_keeps_peak_position() -> None:
    data = np.full(4096, -90.0)
    data[3072] = 0.0
    out = resample_spectrum(data, 1024, radius=2.5)
    assert out.shape == (1024,)
    assert int(np.argmax(out)) == 768


def test_sub_window_maps_columns_to_source_bins() -> None:
    data = np.arange(1024, dtype=np.float64)
    out = resample_spectrum(data, 224, radius=1.5, start=400.0, length=224.0)
    assert np.allclose(out, 400.0 + np.arange(224), atol=1e-3)


def test_columns_outside_frame_get_floor() -> None:
    out = resample_spectrum(np.zeros(64), 10, radius=1.5, start=-100.0, length=10.0)
    assert np.all(out == FLOOR_DB)
