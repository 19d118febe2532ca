"""Two-dimensional view over a :class:`BitPlane`."""

from __future__ import annotations

from .bitplane import BYTE_BITS, BitPlane, ByteBuffer


class Framebuffer:
    """Monochrome XY plane of bits with row-major packing.

    Coordinates are not wrapped here; callers keep ``x`` in ``[0, width)``
    and ``y`` in ``[0, height)``.
    """

    def __init__(self, buffer: ByteBuffer, width: int):
        self.bits = BitPlane(buffer)
        self.width = width
        if width <= 0 or self.bits.length % width:
            raise ValueError(
                f"Width {width} does not divide plane length {self.bits.length}"
            )

    @property
    def height(self) -> int:
        return self.bits.length // self.width

    @property
    def bytes_per_row(self) -> int:
        return self.width // BYTE_BITS

    def to_bit_index(self, x: int, y: int) -> int:
        return y * self.width + x

    def to_byte_index(self, x: int, y: int) -> int:
        return self.to_bit_index(x, y) // BYTE_BITS

    def get_bit(self, x: int, y: int) -> bool:
        return self.bits.get_bit(self.to_bit_index(x, y))

    def set_bit(self, x: int, y: int, value: bool) -> None:
        self.bits.set_bit(self.to_bit_index(x, y), value)

    def lit_pixel_count(self) -> int:
        return sum(bin(byte).count("1") for byte in self.bits.bytes)

    def __repr__(self) -> str:
        return f"Framebuffer(width={self.width}, height={self.height})"
