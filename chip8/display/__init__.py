"""Display subsystem for the CHIP-8 machine."""

from .bitplane import BitPlane
from .framebuffer import Framebuffer
from .renderer import framebuffer_to_array, render_image, save_png

__all__ = [
    # Bit storage
    "BitPlane",
    "Framebuffer",
    # Export helpers
    "framebuffer_to_array",
    "render_image",
    "save_png",
]
