#!/usr/bin/env python3
"""
analyzer.py: decode an image and score its quality.

Runs inside isolated worker processes. The scheduler sends an AnalyzeRequest
holding either the raw file bytes (ByBytes) or a locator string (ByLocator)
and receives an AnalyzeResponse holding either Success(metrics) or
Failure(message). Nothing else crosses the process boundary.

Pipeline: decode with Pillow -> downsample so the longest side is at most
640 px (and no side below 32 px) -> luma -> compute_metrics().
"""

import base64
import binascii
import io
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import unquote_to_bytes, urlparse
from urllib.request import url2pathname

import numpy as np
from PIL import Image

try:
    from pillow_heif import register_heif_opener

    register_heif_opener()
except ImportError:
    pass

from ..config import MAX_SIDE, MIN_SIDE
from ..utils.log_utils import get_logger
from .errors import DecodeError, ScanError, UnsupportedInputError
from .quality import QualityMetrics, compute_metrics

logger = get_logger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed to analyze image"


@dataclass(frozen=True)
class ByBytes:
    """Raw encoded image bytes, as read from disk."""
    data: bytes


@dataclass(frozen=True)
class ByLocator:
    """A data: URI, file:// URL or filesystem path the worker fetches itself."""
    locator: str


ImageSource = Union[ByBytes, ByLocator]


@dataclass(frozen=True)
class Success:
    metrics: QualityMetrics


@dataclass(frozen=True)
class Failure:
    message: str


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class AnalyzeRequest:
    record_id: str
    source: Optional[ImageSource]
    session: int = 0


@dataclass(frozen=True)
class AnalyzeResponse:
    record_id: str
    outcome: Outcome
    session: int = 0

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Success)


def target_size(width: int, height: int) -> Tuple[int, int]:
    """Downsampled (width, height): longest side capped at MAX_SIDE, each side at least MIN_SIDE."""
    scale = min(1.0, MAX_SIDE / max(width, height))
    return (
        max(MIN_SIDE, math.floor(width * scale)),
        max(MIN_SIDE, math.floor(height * scale)),
    )


def fetch_locator(locator: str) -> bytes:
    """Resolve a locator to encoded image bytes."""
    if locator.startswith("data:"):
        header, sep, payload = locator.partition(",")
        if not sep:
            raise DecodeError("malformed data URI")
        if header.endswith(";base64"):
            try:
                return base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as e:
                raise DecodeError(f"invalid base64 payload: {e}") from e
        return unquote_to_bytes(payload)

    if locator.startswith("file://"):
        path = Path(url2pathname(urlparse(locator).path))
    else:
        path = Path(locator)
    try:
        return path.read_bytes()
    except OSError as e:
        raise DecodeError(f"fetch {locator} failed: {e}") from e


def decode_image(data: bytes) -> Image.Image:
    """Decode encoded bytes into a fully loaded PIL image."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeError(f"cannot decode image: {e}") from e
    if img.width == 0 or img.height == 0:
        raise DecodeError("image has no pixels")
    return img


def to_luma(img: Image.Image) -> np.ndarray:
    """Downsample and convert to a float32 luma array of shape (height, width). Alpha is ignored."""
    rgba = img.convert("RGBA")
    size = target_size(*rgba.size)
    if size != rgba.size:
        rgba = rgba.resize(size, resample=Image.Resampling.BILINEAR)
    arr = np.asarray(rgba, dtype=np.float64)
    gray = 0.299 * arr[..., 0] + 0.587 * arr[..., 1] + 0.114 * arr[..., 2]
    return gray.astype(np.float32)


def analyze_image(img: Image.Image) -> QualityMetrics:
    return compute_metrics(to_luma(img))


def analyze(source: Optional[ImageSource]) -> QualityMetrics:
    """
    Score the image described by ``source``.

    Raises:
        UnsupportedInputError: no bytes and no locator were supplied.
        DecodeError: the data could not be fetched or decoded.
    """
    if isinstance(source, ByBytes):
        data = source.data
    elif isinstance(source, ByLocator) and source.locator:
        data = fetch_locator(source.locator)
    else:
        raise UnsupportedInputError("No data")

    with decode_image(data) as img:
        return analyze_image(img)


def handle_request(request: AnalyzeRequest) -> AnalyzeResponse:
    """Worker entry point: never raises, always answers with the request's id and session."""
    try:
        outcome: Outcome = Success(analyze(request.source))
    except ScanError as e:
        outcome = Failure(str(e) or DEFAULT_FAILURE_MESSAGE)
    except Exception as e:
        logger.error("Unexpected failure analyzing %s: %s", request.record_id, e)
        outcome = Failure(f"{type(e).__name__}: {e}" if str(e) else DEFAULT_FAILURE_MESSAGE)
    return AnalyzeResponse(record_id=request.record_id, outcome=outcome, session=request.session)
