import asyncio
import io

import numpy as np
import pytest
from PIL import Image, ImageFilter

from blurry_cleaner.core.analyzer import AnalyzeResponse, Failure, Success, handle_request
from blurry_cleaner.core.quality import QualityMetrics

STUB_METRICS = QualityMetrics(sharpness=50.0, contrast=40.0, noise=5.0, brightness=10.0, quality=48.0)


def checkerboard(size: int = 64) -> Image.Image:
    """One-pixel black/white checkerboard."""
    yy, xx = np.indices((size, size))
    arr = np.where((xx + yy) % 2 == 0, 255, 0).astype(np.uint8)
    return Image.fromarray(arr, mode="L").convert("RGB")


def blurred(img: Image.Image, radius: float = 4) -> Image.Image:
    return img.filter(ImageFilter.GaussianBlur(radius=radius))


def flat(size=(100, 80), color=(128, 128, 128)) -> Image.Image:
    return Image.new("RGB", size, color)


def png_bytes(img: Image.Image) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class InProcessPool:
    """Runs the real worker entry point in-process and records every request."""

    def __init__(self):
        self.requests = []

    async def submit(self, request):
        self.requests.append(request)
        await asyncio.sleep(0)
        return handle_request(request)


class StubPool:
    """Answers with fixed metrics after a short delay; ids in fail_ids fail."""

    def __init__(self, fail_ids=(), delay: float = 0.001):
        self.fail_ids = set(fail_ids)
        self.delay = delay
        self.requests = []
        self.running = 0
        self.max_running = 0

    async def submit(self, request):
        self.requests.append(request)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.running -= 1
        if request.record_id in self.fail_ids:
            return AnalyzeResponse(request.record_id, Failure("boom"), request.session)
        return AnalyzeResponse(request.record_id, Success(STUB_METRICS), request.session)


class GatedPool:
    """Holds every request until the gate is opened."""

    def __init__(self):
        self.gate = asyncio.Event()
        self.requests = []

    async def submit(self, request):
        self.requests.append(request)
        await self.gate.wait()
        return AnalyzeResponse(request.record_id, Success(STUB_METRICS), request.session)


@pytest.fixture
def image_dir(tmp_path):
    """A folder with a sharp image, a blurred copy and a nested flat image."""
    root = tmp_path / "photos"
    (root / "nested").mkdir(parents=True)
    sharp = checkerboard(64)
    sharp.save(root / "sharp.png")
    blurred(sharp).save(root / "soft.png")
    flat().save(root / "nested" / "flat.jpg")
    (root / "notes.txt").write_text("not an image")
    return root
