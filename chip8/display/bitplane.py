"""Packed bit array over a byte buffer."""

from __future__ import annotations

from typing import Tuple, Union

BYTE_BITS = 8

ByteBuffer = Union[bytearray, memoryview]


class BitPlane:
    """Get and set individual bits of a byte buffer, MSB first.

    The buffer is used in place: writes through a ``memoryview`` land in the
    underlying memory. Indices are not range checked.
    """

    def __init__(self, buffer: ByteBuffer):
        self.bytes = buffer

    @property
    def length(self) -> int:
        """Number of addressable bits."""
        return len(self.bytes) * BYTE_BITS

    @staticmethod
    def byte_and_bit_index(index: int) -> Tuple[int, int]:
        return index // BYTE_BITS, index % BYTE_BITS

    def get_bit(self, index: int) -> bool:
        byte_index, bit_index = self.byte_and_bit_index(index)
        return bool((self.bytes[byte_index] >> (BYTE_BITS - 1 - bit_index)) & 1)

    def set_bit(self, index: int, value: bool) -> None:
        byte_index, bit_index = self.byte_and_bit_index(index)
        mask = 1 << (BYTE_BITS - 1 - bit_index)
        if value:
            self.bytes[byte_index] |= mask
        else:
            self.bytes[byte_index] &= ~mask & 0xFF

    def __len__(self) -> int:
        return self.length

    def __str__(self) -> str:
        return "".join(f"{byte:08b}" for byte in self.bytes)
