import numpy as np
import pytest

from blurry_cleaner.core.quality import (
    QualityMetrics,
    classify,
    clamp,
    compute_metrics,
    is_flagged,
    laplacian_variance,
    noise_level,
)

from conftest import blurred, checkerboard


def _luma(img) -> np.ndarray:
    return np.asarray(img.convert("L"), dtype=np.float32)


def test_flat_gray_has_no_edges_or_contrast():
    gray = np.full((50, 60), 128.0, dtype=np.float32)
    m = compute_metrics(gray)

    assert m.sharpness == 0.0
    assert m.contrast == 0.0
    assert m.noise == 0.0
    assert m.brightness == 0.0
    assert m.quality == pytest.approx(10.0)


def test_white_image_penalises_brightness():
    gray = np.full((40, 40), 255.0, dtype=np.float32)
    m = compute_metrics(gray)

    assert m.brightness == pytest.approx(127 / 128 * 100)
    assert m.quality == pytest.approx(10 - m.brightness * 0.05)


def test_linear_ramp_has_zero_laplacian():
    gray = np.tile(np.arange(50, dtype=np.float32) * 2, (40, 1))
    assert laplacian_variance(gray) == pytest.approx(0.0, abs=1e-9)
    assert noise_level(gray) == pytest.approx(0.0, abs=1e-9)
    assert compute_metrics(gray).sharpness == pytest.approx(0.0, abs=1e-6)


def test_checkerboard_scores_sharper_than_blurred_copy():
    sharp_img = checkerboard(64)
    sharp = compute_metrics(_luma(sharp_img))
    soft = compute_metrics(_luma(blurred(sharp_img)))

    assert sharp.sharpness > soft.sharpness
    assert sharp.sharpness == 100.0
    assert sharp.quality > soft.quality


def test_checkerboard_laplacian_variance():
    # every interior response is +/-1020
    gray = _luma(checkerboard(16)).astype(np.float64)
    assert laplacian_variance(gray) == pytest.approx(1020.0 ** 2)


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_scores_stay_in_range(seed):
    rng = np.random.default_rng(seed)
    gray = rng.uniform(0, 255, size=(48, 70)).astype(np.float32)
    m = compute_metrics(gray)
    for value in (m.sharpness, m.contrast, m.noise, m.brightness, m.quality):
        assert 0.0 <= value <= 100.0


def test_compute_metrics_is_deterministic():
    rng = np.random.default_rng(42)
    gray = rng.uniform(0, 255, size=(64, 64)).astype(np.float32)
    assert compute_metrics(gray) == compute_metrics(gray.copy())


def test_compute_metrics_rejects_bad_shapes():
    with pytest.raises(ValueError):
        compute_metrics(np.zeros((2, 10), dtype=np.float32))
    with pytest.raises(ValueError):
        compute_metrics(np.zeros(100, dtype=np.float32))


def test_classify_band_edges():
    threshold = 42
    assert classify(33.99, threshold) == "reject"
    assert classify(34, threshold) == "maybe"
    assert classify(45.99, threshold) == "maybe"
    assert classify(46, threshold) == "keep"


def test_classify_is_monotonic():
    order = {"reject": 0, "maybe": 1, "keep": 2}
    for threshold in (10, 42, 80):
        labels = [order[classify(q / 2, threshold)] for q in range(0, 201)]
        assert labels == sorted(labels)


def test_flagging_and_clamp():
    m = QualityMetrics(sharpness=1, contrast=2, noise=3, brightness=4, quality=30)
    assert is_flagged(m, 42)
    assert not is_flagged(m, 30)
    assert clamp(-5, 0, 100) == 0
    assert clamp(150, 0, 100) == 100
    assert QualityMetrics.from_dict(m.to_dict()) == m
