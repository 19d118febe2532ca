"""CHIP-8 machine state: memory, registers, call stack, timers and display."""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Union

from .constants import (
    ADDRESS_MASK,
    BYTE_MASK,
    DISPLAY_OFFSET,
    DISPLAY_SIZE,
    DISPLAY_WIDTH,
    FONT,
    FONT_OFFSET,
    INSTRUCTION_SIZE,
    KEY_COUNT,
    MEMORY_SIZE,
    PROGRAM_OFFSET,
    PROGRAM_SIZE,
    REGISTER_COUNT,
    SKIP_SIZE,
    STACK_OFFSET,
    STACK_SIZE,
    WORD_MASK,
)
from .display import Framebuffer
from .errors import ProgramTooLarge, StackOverflow, StackUnderflow
from .events import EventDispatcher, MachineEvent, RegisterName

logger = logging.getLogger(__name__)

MemoryData = Union[bytes, bytearray, memoryview, List[int], int]


class MachineState:
    """Register file, memory and display of one CHIP-8 machine.

    Every mutation goes through a setter that emits a notification on
    ``events`` so observers never fall out of sync with the machine.
    """

    def __init__(self, seed: Optional[int] = None):
        self.memory = bytearray(MEMORY_SIZE)
        self.display = Framebuffer(
            memoryview(self.memory)[DISPLAY_OFFSET : DISPLAY_OFFSET + DISPLAY_SIZE],
            DISPLAY_WIDTH,
        )
        self.events = EventDispatcher()
        self.v = bytearray(REGISTER_COUNT)
        self.i = 0
        self.pc = 0
        self.sp = 0
        self.dt = 0
        self.st = 0
        self.cycle = 0
        self.key: Optional[int] = None
        self._random = random.Random(seed)

        self.set_memory(FONT, FONT_OFFSET)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def reset(self) -> None:
        """Restore the power-on state (zeroed memory plus font)."""
        self.set_memory(0, 0, MEMORY_SIZE)
        self.clear_display()
        self.set_memory(FONT, FONT_OFFSET)
        for index in range(REGISTER_COUNT):
            self.set_v(index, 0)
        self.set_i(0)
        self.set_sp(0)
        self.set_pc(0)
        self.set_dt(0)
        self.set_st(0)
        self.cycle = 0
        logger.debug("Machine reset")

    def load_program(self, image: Union[bytes, bytearray, memoryview]) -> None:
        """Copy ``image`` into the program region and point PC at it."""
        size = len(image)
        if size > PROGRAM_SIZE:
            raise ProgramTooLarge(size, PROGRAM_SIZE)
        self.set_memory(image, PROGRAM_OFFSET)
        self.set_pc(PROGRAM_OFFSET)
        logger.debug("Loaded %d byte program at 0x%03X", size, PROGRAM_OFFSET)

    # ------------------------------------------------------------------ #
    # Memory
    # ------------------------------------------------------------------ #
    def set_memory(
        self, data: MemoryData, offset: int, length: Optional[int] = None
    ) -> None:
        """Bulk write memory at ``offset``.

        ``data`` is either a byte sequence, copied (first ``length`` bytes,
        all of it by default), or an int fill value repeated ``length``
        times (once by default).
        """
        if isinstance(data, int):
            length = 1 if length is None else length
            payload = bytes([data & BYTE_MASK]) * length
        else:
            payload = bytes(data)
            length = len(payload) if length is None else length
            payload = payload[:length]

        if offset < 0 or offset + length > MEMORY_SIZE or len(payload) != length:
            raise ValueError(
                f"Memory write of {length} bytes at 0x{offset:03X} out of range"
            )
        self.memory[offset : offset + length] = payload

        self.events.emit(MachineEvent.memory_changed(offset, length))

    def read_byte(self, address: int) -> int:
        return self.memory[address & ADDRESS_MASK]

    def read_word(self, address: int) -> int:
        """Read a big-endian 16-bit word."""
        return (self.read_byte(address) << 8) | self.read_byte(address + 1)

    def read_block(self, address: int, length: int) -> bytes:
        return bytes(self.read_byte(address + offset) for offset in range(length))

    def write_block(self, address: int, data: bytes) -> None:
        """Write ``data`` at ``address``, wrapping around the address space."""
        start = address & ADDRESS_MASK
        if start + len(data) <= MEMORY_SIZE:
            self.set_memory(data, start)
            return
        head = MEMORY_SIZE - start
        self.set_memory(data[:head], start)
        self.set_memory(data[head:], 0)

    # ------------------------------------------------------------------ #
    # Registers
    # ------------------------------------------------------------------ #
    def set_v(self, index: int, value: int) -> None:
        self.v[index] = int(value) & BYTE_MASK
        self.events.emit(MachineEvent.register_changed(RegisterName.V, index))

    def set_i(self, address: int) -> None:
        self.i = address & WORD_MASK
        self.events.emit(MachineEvent.register_changed(RegisterName.I))

    def set_pc(self, address: int) -> None:
        self.pc = address & WORD_MASK
        self.events.emit(MachineEvent.register_changed(RegisterName.PC))

    def set_sp(self, offset: int) -> None:
        self.sp = offset & BYTE_MASK
        self.events.emit(MachineEvent.register_changed(RegisterName.SP))

    def set_dt(self, value: int) -> None:
        self.dt = value & BYTE_MASK
        self.events.emit(MachineEvent.register_changed(RegisterName.DT))

    def set_st(self, value: int) -> None:
        self.st = value & BYTE_MASK
        self.events.emit(MachineEvent.register_changed(RegisterName.ST))

    def reg_dump(self, n: int) -> None:
        """Store V0..Vn (inclusive) at I; I is left unmodified."""
        self.write_block(self.i, bytes(self.v[: n + 1]))

    def reg_load(self, n: int) -> None:
        """Fill V0..Vn (inclusive) from memory at I; I is left unmodified."""
        for index, value in enumerate(self.read_block(self.i, n + 1)):
            self.set_v(index, value)

    # ------------------------------------------------------------------ #
    # Program counter
    # ------------------------------------------------------------------ #
    def next_pc(self) -> int:
        return self.pc + INSTRUCTION_SIZE

    def skip_pc(self) -> int:
        return self.pc + SKIP_SIZE

    # ------------------------------------------------------------------ #
    # Call stack
    # ------------------------------------------------------------------ #
    def push_stack(self, address: int) -> None:
        if self.sp >= STACK_SIZE:
            raise StackOverflow(self.sp)

        offset = STACK_OFFSET + self.sp
        self.set_memory((address & WORD_MASK).to_bytes(2, "big"), offset)
        self.set_sp(self.sp + 2)

    def pop_stack(self) -> int:
        if self.sp == 0:
            raise StackUnderflow(self.sp)

        self.set_sp(self.sp - 2)
        offset = STACK_OFFSET + self.sp
        address = self.read_word(offset)
        self.set_memory(0, offset, 2)
        return address

    def stack_frames(self) -> List[int]:
        """Return the pushed return addresses, oldest first."""
        return [self.read_word(STACK_OFFSET + slot) for slot in range(0, self.sp, 2)]

    # ------------------------------------------------------------------ #
    # Display
    # ------------------------------------------------------------------ #
    def clear_display(self) -> None:
        self.set_memory(0, DISPLAY_OFFSET, DISPLAY_SIZE)
        self.events.emit(MachineEvent.display_cleared())

    # ------------------------------------------------------------------ #
    # Input and randomness
    # ------------------------------------------------------------------ #
    def press(self, key: Optional[int]) -> None:
        """Set the currently held key (0-15), or clear it with ``None``."""
        if key is not None and (isinstance(key, bool) or not 0 <= key < KEY_COUNT):
            raise ValueError(f"Invalid key: {key}")
        self.key = key

    def release(self) -> None:
        self.key = None

    def rand(self) -> int:
        return self._random.randrange(256)

    def seed(self, value: Optional[int]) -> None:
        self._random.seed(value)
