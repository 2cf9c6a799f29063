"""Offline placeholder images, used when the real provider is unavailable."""

import asyncio
import base64
import io
import logging
import random
from typing import Tuple

from PIL import Image, ImageDraw, ImageFont

from studio.workflow.images import GeneratedImage

log = logging.getLogger("studio.workflow.mock")

CANVAS = 1200
GRID_STEP = 80
BACKGROUND = (11, 15, 23, 255)
TITLE = "LISTING STUDIO — MOCK"
DEFAULT_DELAY_MS: Tuple[int, int] = (650, 1300)


def _font(size: int) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def render_mock_png(label: str, seed: int) -> bytes:
    """Draw the placeholder. Pure function of (label, seed)."""
    base = Image.new("RGBA", (CANVAS, CANVAS), BACKGROUND)
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    grid = (255, 255, 255, 46)
    for x in range(0, CANVAS + 1, GRID_STEP):
        draw.line([(x, 0), (x, CANVAS)], fill=grid, width=1)
    for y in range(0, CANVAS + 1, GRID_STEP):
        draw.line([(0, y), (CANVAS, y)], fill=grid, width=1)

    draw.rounded_rectangle([80, 120, 1120, 1080], radius=40, fill=(255, 255, 255, 15))
    draw.text((140, 170), TITLE, font=_font(52), fill=(255, 255, 255, 235))
    draw.text((140, 255), label[:50], font=_font(34), fill=(255, 255, 255, 199))
    draw.text((140, 322), f"seed: {seed}", font=_font(28), fill=(255, 255, 255, 166))
    draw.rounded_rectangle([140, 420, 1060, 980], radius=34, fill=(255, 255, 255, 26))
    draw.text((240, 680), "(replace with the generated image)", font=_font(40), fill=(255, 255, 255, 140))

    out = io.BytesIO()
    Image.alpha_composite(base, overlay).convert("RGB").save(out, format="PNG")
    return out.getvalue()


async def mock_generate_image(
    label: str,
    seed: int,
    delay_ms: Tuple[int, int] = DEFAULT_DELAY_MS,
) -> GeneratedImage:
    lo, hi = delay_ms
    delay = random.uniform(lo, hi) / 1000.0 if hi > 0 else 0.0
    await asyncio.sleep(delay)
    png = render_mock_png(label, seed)
    log.info("mock_image label=%s seed=%s bytes=%s", label[:50], seed, len(png))
    return GeneratedImage(base64=base64.b64encode(png).decode("ascii"), mime="image/png", model_used="mock")
