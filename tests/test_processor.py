import numpy as np
import pytest

from sdr_panadapter.dsp.processor import SpectrumProcessor


def _tone(n: int, cycles_per_sample: float) -> np.ndarray:
    idx = np.arange(n)
    return np.exp(2j * np.pi * cycles_per_sample * idx).astype(np.complex64)


@pytest.mark.parametrize("window", SpectrumProcessor.WINDOWS)
def test_full_scale_tone_reads_zero_dbfs(window) -> None:
    proc = SpectrumProcessor(1024, window)
    db = proc.power_db(_tone(4096, 0.25))
    assert db.shape == (1024,)
    assert db.dtype == np.float32
    # fs/4 lands a quarter of the way above the center bin after fftshift.
    assert int(np.argmax(db)) == 768
    assert db[768] == pytest.approx(0.0, abs=0.05)
    assert np.median(db) < -60.0


def test_short_buffer_is_zero_padded() -> None:
    proc = SpectrumProcessor(256)
    db = proc.power_db(_tone(100, 0.25))
    assert db.shape == (256,)
    assert np.all(np.isfinite(db))


def test_dc_removal() -> None:
    proc = SpectrumProcessor(512)
    x = np.full(2048, 0.5 + 0.0j, dtype=np.complex64)
    assert proc.power_db(x)[256] < -100.0
    assert proc.power_db(x, dc_remove=False)[256] > -10.0

