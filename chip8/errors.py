"""Error taxonomy for the CHIP-8 core."""

from __future__ import annotations


class Chip8Error(Exception):
    """Base class for errors raised by the machine core."""


class ProgramTooLarge(Chip8Error, ValueError):
    """Program image does not fit in the program region."""

    def __init__(self, size: int, capacity: int) -> None:
        super().__init__(f"Program size {size} exceeds maximum {capacity}")
        self.size = size
        self.capacity = capacity


class StackOverflow(Chip8Error):
    """Push attempted with every stack slot in use."""

    def __init__(self, sp: int) -> None:
        super().__init__(f"Stack overflow (sp=0x{sp:02X})")
        self.sp = sp


class StackUnderflow(Chip8Error):
    """Pop attempted on an empty stack."""

    def __init__(self, sp: int) -> None:
        super().__init__(f"Stack empty (sp=0x{sp:02X})")
        self.sp = sp


__all__ = ["Chip8Error", "ProgramTooLarge", "StackOverflow", "StackUnderflow"]
