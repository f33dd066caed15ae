"""
demo.py - synthetic demo image set.

Builds DEMO_COUNT 800x540 PNG images: a colored rounded card with a caption on
a dark background. Odd-numbered images are blurred so a scan of the set shows
both outcomes. Images are carried as data: URIs so no files are needed.
"""

import base64
import io
import time
from typing import List, Optional

from PIL import Image, ImageDraw, ImageEnhance, ImageFilter, ImageFont

from ..config import DEMO_COUNT, DEMO_SIZE
from .records import ImageRecord

DEMO_COLORS = ['#8ef6ff', '#fce28a', '#c5f36b', '#ffb5e8', '#a3bfff']
BACKGROUND = '#0c1018'
BLUR_RADIUS = 6


def _load_font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def render_demo_image(index: int) -> Image.Image:
    blurred = index % 2 == 1
    img = Image.new("RGB", DEMO_SIZE, BACKGROUND)
    draw = ImageDraw.Draw(img)
    left, top = 80 + index * 8, 120
    draw.rounded_rectangle(
        (left, top, left + 520, top + 220),
        radius=28,
        fill=DEMO_COLORS[index % len(DEMO_COLORS)],
    )
    draw.text((140, 190), "BLUR" if blurred else "CRISP", fill=BACKGROUND, font=_load_font(72))
    if blurred:
        img = img.filter(ImageFilter.GaussianBlur(radius=BLUR_RADIUS))
        img = ImageEnhance.Color(img).enhance(0.8)
    return img


def to_data_uri(img: Image.Image) -> str:
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def create_demo_images(count: int = DEMO_COUNT, now: Optional[float] = None) -> List[ImageRecord]:
    """Demo records spaced one hour apart, newest first."""
    now = time.time() if now is None else now
    records = []
    for i in range(count):
        locator = to_data_uri(render_demo_image(i))
        stamp = now - i * 60 * 60
        records.append(ImageRecord(
            id=f"demo-{i}",
            name=f"Blurred-{i}.png" if i % 2 == 1 else f"Sharp-{i}.png",
            absolute_path=f"demo/{i}.png",
            locator=locator,
            size=len(locator),
            modified_at=stamp,
            created_at=stamp,
        ))
    return records
