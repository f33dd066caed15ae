"""
quality.py: image quality scoring kernel.

Turns a 2-D grayscale (luma) array into four 0-100 component scores and one
composite quality score. Higher quality is better; sharpness, contrast, noise
and brightness deviation feed a fixed weighted sum.

Example:
    gray = to_luma(image)
    metrics = compute_metrics(gray)
    label = classify(metrics.quality, threshold=42)
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict

import numpy as np

# Score normalisation constants
CONTRAST_STD_FULL_SCALE = 80.0
SHARPNESS_LOG_SCALE = 18.0
NOISE_FULL_SCALE = 25.0
MID_GRAY = 128.0

# Composite weights
WEIGHT_SHARPNESS = 0.65
WEIGHT_CONTRAST = 0.25
WEIGHT_NOISE = 0.2
WEIGHT_BRIGHTNESS = 0.05
QUALITY_BASELINE = 10.0

# Classification bands around the threshold
REJECT_MARGIN = 8
KEEP_MARGIN = 4

LABELS = ("reject", "maybe", "keep")


@dataclass(frozen=True)
class QualityMetrics:
    """Component scores and composite quality, all in [0, 100]."""
    sharpness: float
    contrast: float
    noise: float
    brightness: float
    quality: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'QualityMetrics':
        return cls(
            sharpness=float(data["sharpness"]),
            contrast=float(data["contrast"]),
            noise=float(data["noise"]),
            brightness=float(data["brightness"]),
            quality=float(data["quality"]),
        )


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def classify(quality: float, threshold: float) -> str:
    """
    Label a quality score relative to a user threshold.

    The reject band ends 8 below the threshold and the keep band starts 4
    above it, so a one-step threshold change rarely flips a label.
    """
    if quality < threshold - REJECT_MARGIN:
        return "reject"
    if quality < threshold + KEEP_MARGIN:
        return "maybe"
    return "keep"


def is_flagged(metrics: QualityMetrics, threshold: float) -> bool:
    return metrics.quality < threshold


def laplacian_variance(gray: np.ndarray) -> float:
    """Population variance of the 4-neighbour Laplacian over interior pixels."""
    g = gray.astype(np.float64, copy=False)
    lap = (
        g[:-2, 1:-1]
        + g[2:, 1:-1]
        + g[1:-1, :-2]
        + g[1:-1, 2:]
        - 4.0 * g[1:-1, 1:-1]
    )
    n = lap.size
    lap_mean = float(lap.sum()) / n
    return float(np.square(lap).sum()) / n - lap_mean * lap_mean


def noise_level(gray: np.ndarray) -> float:
    """Mean absolute deviation of interior pixels from their 4-neighbour mean."""
    g = gray.astype(np.float64, copy=False)
    neighbour_mean = (g[1:-1, :-2] + g[1:-1, 2:] + g[:-2, 1:-1] + g[2:, 1:-1]) / 4.0
    deviation = np.abs(g[1:-1, 1:-1] - neighbour_mean)
    return float(deviation.sum()) / deviation.size


def compute_metrics(gray: np.ndarray) -> QualityMetrics:
    """
    Score a row-major luma array of shape (height, width).

    Both dimensions must be at least 3 so an interior exists.
    """
    if gray.ndim != 2:
        raise ValueError(f"expected a 2-D luma array, got shape {gray.shape}")
    height, width = gray.shape
    if width < 3 or height < 3:
        raise ValueError(f"image too small to score: {width}x{height}")

    g = gray.astype(np.float64, copy=False)
    mean = float(g.sum()) / g.size
    contrast_std = math.sqrt(float(np.square(g - mean).sum()) / g.size)

    sharpness = clamp(math.log10(laplacian_variance(g) + 1) * SHARPNESS_LOG_SCALE, 0, 100)
    contrast = clamp(contrast_std / CONTRAST_STD_FULL_SCALE * 100, 0, 100)
    noise = clamp(noise_level(g) / NOISE_FULL_SCALE * 100, 0, 100)
    brightness = clamp(abs(mean - MID_GRAY) / MID_GRAY * 100, 0, 100)

    quality = clamp(
        sharpness * WEIGHT_SHARPNESS
        + contrast * WEIGHT_CONTRAST
        - noise * WEIGHT_NOISE
        - brightness * WEIGHT_BRIGHTNESS
        + QUALITY_BASELINE,
        0,
        100,
    )
    return QualityMetrics(
        sharpness=sharpness,
        contrast=contrast,
        noise=noise,
        brightness=brightness,
        quality=quality,
    )
