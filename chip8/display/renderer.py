"""Framebuffer export helpers for observers (arrays and images)."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image

from .framebuffer import Framebuffer

Color = Tuple[int, int, int]

OFF_COLOR: Color = (0, 0, 0)
ON_COLOR: Color = (0, 255, 0)


def framebuffer_to_array(framebuffer: Framebuffer) -> np.ndarray:
    """Return a ``(height, width)`` uint8 array of pixel values (0 or 1)."""
    packed = np.frombuffer(bytes(framebuffer.bits.bytes), dtype=np.uint8)
    bits = np.unpackbits(packed)  # MSB first, same packing as the plane
    return bits.reshape(framebuffer.height, framebuffer.width)


def render_image(
    framebuffer: Framebuffer,
    zoom: int = 1,
    on_color: Color = ON_COLOR,
    off_color: Color = OFF_COLOR,
) -> Image.Image:
    """Render the framebuffer as an RGB PIL image scaled by ``zoom``."""
    if zoom < 1:
        raise ValueError(f"Invalid zoom: {zoom}")

    pixels = framebuffer_to_array(framebuffer)
    rgb = np.empty(pixels.shape + (3,), dtype=np.uint8)
    rgb[...] = off_color
    rgb[pixels == 1] = on_color

    image = Image.fromarray(rgb)
    if zoom > 1:
        image = image.resize((image.width * zoom, image.height * zoom), Image.NEAREST)
    return image


def save_png(framebuffer: Framebuffer, path: Union[str, Path], zoom: int = 4) -> Path:
    """Save the framebuffer to ``path`` as a PNG and return the path."""
    target = Path(path)
    render_image(framebuffer, zoom=zoom).save(target)
    return target
