"""CHIP-8 instruction decoder and executor.

Opcodes are matched against ``INSTRUCTION_TABLE`` in order; the first entry
whose ``opcode & mask == match`` wins, so the fully specified entries (``00E0``,
``00EE``) sit ahead of the class-nibble entry (``0NNN``) that would otherwise
shadow them.

Executing an instruction returns either an explicit next program counter or
``None``; the driver advances PC by one instruction for ``None``. Jumps,
calls, returns and skips all return an address. Await-key (``FX0A``) is the
only instruction that can return the *current* PC, which makes the driver
re-run it on the next cycle until a key is pending.

Opcodes that match no entry are tolerated and behave as no-ops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterator, Optional, Sequence, Tuple, Union

from .constants import DISPLAY_OFFSET, FLAG_REGISTER, GLYPH_SIZE
from .display import BitPlane, Framebuffer
from .events import MachineEvent

if TYPE_CHECKING:
    from .machine import MachineState

logger = logging.getLogger(__name__)

SPRITE_WIDTH = 8


@dataclass(frozen=True)
class Operands:
    """Operand fields extracted from a 16-bit opcode."""

    opcode: int

    @property
    def x(self) -> int:
        return (self.opcode & 0x0F00) >> 8

    @property
    def y(self) -> int:
        return (self.opcode & 0x00F0) >> 4

    @property
    def n(self) -> int:
        return self.opcode & 0x000F

    @property
    def nn(self) -> int:
        return self.opcode & 0x00FF

    @property
    def nnn(self) -> int:
        return self.opcode & 0x0FFF


Handler = Callable[["MachineState", Operands], Optional[int]]
Describe = Callable[[Operands], str]


@dataclass(frozen=True)
class InstructionSpec:
    """One dispatch table entry."""

    pattern: str
    mask: int
    match: int
    describe: Describe
    execute: Handler

    def matches(self, opcode: int) -> bool:
        return (opcode & self.mask) == self.match


def _hex(value: int, digits: int) -> str:
    return f"0x{value:0{digits}x}"


def _reg(index: int) -> str:
    return f"v{index:x}"


# ---------------------------------------------------------------------- #
# Flow control
# ---------------------------------------------------------------------- #
def _clear_screen(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.clear_display()
    return None


def _return(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.pop_stack()


def _jump(machine: "MachineState", ops: Operands) -> Optional[int]:
    # Also used for 0NNN: machine code routines are not emulated.
    return ops.nnn


def _call(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.push_stack(machine.next_pc())
    return ops.nnn


def _jump_offset(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.v[0] + ops.nnn


# ---------------------------------------------------------------------- #
# Conditional skips
# ---------------------------------------------------------------------- #
def _skip_eq_imm(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.skip_pc() if machine.v[ops.x] == ops.nn else None


def _skip_ne_imm(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.skip_pc() if machine.v[ops.x] != ops.nn else None


def _skip_eq_reg(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.skip_pc() if machine.v[ops.x] == machine.v[ops.y] else None


def _skip_ne_reg(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.skip_pc() if machine.v[ops.x] != machine.v[ops.y] else None


def _skip_key_eq(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.skip_pc() if machine.key == machine.v[ops.x] else None


def _skip_key_ne(machine: "MachineState", ops: Operands) -> Optional[int]:
    return machine.skip_pc() if machine.key != machine.v[ops.x] else None


# ---------------------------------------------------------------------- #
# Register loads and ALU
# ---------------------------------------------------------------------- #
def _set_imm(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(ops.x, ops.nn)
    return None


def _add_imm(machine: "MachineState", ops: Operands) -> Optional[int]:
    # Carry flag is not changed.
    machine.set_v(ops.x, (machine.v[ops.x] + ops.nn) & 0xFF)
    return None


def _copy(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(ops.x, machine.v[ops.y])
    return None


def _or(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(ops.x, machine.v[ops.x] | machine.v[ops.y])
    return None


def _and(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(ops.x, machine.v[ops.x] & machine.v[ops.y])
    return None


def _xor(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(ops.x, machine.v[ops.x] ^ machine.v[ops.y])
    return None


def _add(machine: "MachineState", ops: Operands) -> Optional[int]:
    value = machine.v[ops.x] + machine.v[ops.y]
    machine.set_v(FLAG_REGISTER, 1 if value > 0xFF else 0)
    machine.set_v(ops.x, value & 0xFF)
    return None


def _sub(machine: "MachineState", ops: Operands) -> Optional[int]:
    # VF is 1 only for a strictly positive difference; equal operands give 0.
    value = machine.v[ops.x] - machine.v[ops.y]
    machine.set_v(FLAG_REGISTER, 1 if value > 0 else 0)
    machine.set_v(ops.x, value & 0xFF)
    return None


def _shift_right(machine: "MachineState", ops: Operands) -> Optional[int]:
    # Vx is re-read after the flag write, so 8FY6 shifts the new flag.
    machine.set_v(FLAG_REGISTER, machine.v[ops.x] & 0x1)
    machine.set_v(ops.x, machine.v[ops.x] >> 1)
    return None


def _reverse_sub(machine: "MachineState", ops: Operands) -> Optional[int]:
    value = machine.v[ops.y] - machine.v[ops.x]
    machine.set_v(FLAG_REGISTER, 1 if value > 0 else 0)
    machine.set_v(ops.x, value & 0xFF)
    return None


def _shift_left(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(FLAG_REGISTER, machine.v[ops.x] >> 7)
    machine.set_v(ops.x, (machine.v[ops.x] << 1) & 0xFF)
    return None


def _set_index(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_i(ops.nnn)
    return None


def _random_and(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(ops.x, machine.rand() & ops.nn)
    return None


# ---------------------------------------------------------------------- #
# Display
# ---------------------------------------------------------------------- #
def _row_byte_span(display: Framebuffer, x: int, y: int) -> Tuple[int, int]:
    """Return ``(first_byte, length)`` of the bytes a sprite row touches."""
    if x + SPRITE_WIDTH <= display.width:
        first = display.to_byte_index(x, y)
        last = display.to_byte_index(x + SPRITE_WIDTH - 1, y)
        return first, last - first + 1
    # The row wraps horizontally, so report the whole display row.
    return display.to_byte_index(0, y), display.bytes_per_row


def _draw(machine: "MachineState", ops: Operands) -> Optional[int]:
    display = machine.display
    x_loc = machine.v[ops.x]
    y_loc = machine.v[ops.y]
    x_origin = x_loc % display.width
    collision = 0

    row = BitPlane(bytearray(1))
    for i in range(ops.n):
        y_pos = (y_loc + i) % display.height
        row.bytes[0] = machine.read_byte(machine.i + i)
        for j in range(SPRITE_WIDTH):
            bit = row.get_bit(j)
            if not bit:
                continue
            x_pos = (x_loc + j) % display.width
            prev_bit = display.get_bit(x_pos, y_pos)
            display.set_bit(x_pos, y_pos, not prev_bit)
            if prev_bit:
                collision = 1

        first, length = _row_byte_span(display, x_origin, y_pos)
        machine.events.emit(MachineEvent.memory_changed(DISPLAY_OFFSET + first, length))

    machine.set_v(FLAG_REGISTER, collision)
    machine.events.emit(
        MachineEvent.display_updated(x_origin, y_loc % display.height, ops.n)
    )
    return None


# ---------------------------------------------------------------------- #
# Timers, keys and memory
# ---------------------------------------------------------------------- #
def _get_delay(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_v(ops.x, machine.dt)
    return None


def _await_key(machine: "MachineState", ops: Operands) -> Optional[int]:
    key = machine.key
    if key is None:
        return machine.pc
    machine.set_v(ops.x, key)
    return None


def _set_delay(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_dt(machine.v[ops.x])
    return None


def _set_sound(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_st(machine.v[ops.x])
    return None


def _add_index(machine: "MachineState", ops: Operands) -> Optional[int]:
    # VF is not affected.
    machine.set_i(machine.i + machine.v[ops.x])
    return None


def _glyph_address(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.set_i(machine.v[ops.x] * GLYPH_SIZE)
    return None


def _store_bcd(machine: "MachineState", ops: Operands) -> Optional[int]:
    value = machine.v[ops.x]
    machine.write_block(machine.i, bytes([value // 100, (value // 10) % 10, value % 10]))
    return None


def _reg_dump(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.reg_dump(ops.x)
    return None


def _reg_load(machine: "MachineState", ops: Operands) -> Optional[int]:
    machine.reg_load(ops.x)
    return None


# Priority ordered: most specific masks of each class nibble first.
INSTRUCTION_TABLE: Tuple[InstructionSpec, ...] = (
    InstructionSpec("00E0", 0xFFFF, 0x00E0, lambda o: "disp_clear()", _clear_screen),
    InstructionSpec("00EE", 0xFFFF, 0x00EE, lambda o: "return", _return),
    InstructionSpec("0NNN", 0xF000, 0x0000, lambda o: f"call {_hex(o.nnn, 3)}", _jump),
    InstructionSpec("1NNN", 0xF000, 0x1000, lambda o: f"goto {_hex(o.nnn, 3)}", _jump),
    InstructionSpec("2NNN", 0xF000, 0x2000, lambda o: f"*({_hex(o.nnn, 3)})()", _call),
    InstructionSpec(
        "3XNN", 0xF000, 0x3000,
        lambda o: f"if ({_reg(o.x)} == {_hex(o.nn, 2)})", _skip_eq_imm,
    ),
    InstructionSpec(
        "4XNN", 0xF000, 0x4000,
        lambda o: f"if ({_reg(o.x)} != {_hex(o.nn, 2)})", _skip_ne_imm,
    ),
    InstructionSpec(
        "5XY0", 0xF00F, 0x5000,
        lambda o: f"if ({_reg(o.x)} == {_reg(o.y)})", _skip_eq_reg,
    ),
    InstructionSpec(
        "6XNN", 0xF000, 0x6000, lambda o: f"{_reg(o.x)} = {_hex(o.nn, 2)}", _set_imm
    ),
    InstructionSpec(
        "7XNN", 0xF000, 0x7000, lambda o: f"{_reg(o.x)} += {_hex(o.nn, 2)}", _add_imm
    ),
    InstructionSpec("8XY0", 0xF00F, 0x8000, lambda o: f"{_reg(o.x)} = {_reg(o.y)}", _copy),
    InstructionSpec("8XY1", 0xF00F, 0x8001, lambda o: f"{_reg(o.x)} |= {_reg(o.y)}", _or),
    InstructionSpec("8XY2", 0xF00F, 0x8002, lambda o: f"{_reg(o.x)} &= {_reg(o.y)}", _and),
    InstructionSpec("8XY3", 0xF00F, 0x8003, lambda o: f"{_reg(o.x)} ^= {_reg(o.y)}", _xor),
    InstructionSpec("8XY4", 0xF00F, 0x8004, lambda o: f"{_reg(o.x)} += {_reg(o.y)}", _add),
    InstructionSpec("8XY5", 0xF00F, 0x8005, lambda o: f"{_reg(o.x)} -= {_reg(o.y)}", _sub),
    InstructionSpec("8XY6", 0xF00F, 0x8006, lambda o: f"{_reg(o.x)} >>= 1", _shift_right),
    InstructionSpec(
        "8XY7", 0xF00F, 0x8007,
        lambda o: f"{_reg(o.x)} = {_reg(o.y)} - {_reg(o.x)}", _reverse_sub,
    ),
    InstructionSpec("8XYE", 0xF00F, 0x800E, lambda o: f"{_reg(o.x)} <<= 1", _shift_left),
    InstructionSpec(
        "9XY0", 0xF00F, 0x9000,
        lambda o: f"if ({_reg(o.x)} != {_reg(o.y)})", _skip_ne_reg,
    ),
    InstructionSpec("ANNN", 0xF000, 0xA000, lambda o: f"I = {_hex(o.nnn, 3)}", _set_index),
    InstructionSpec(
        "BNNN", 0xF000, 0xB000, lambda o: f"PC = v0 + {_hex(o.nnn, 3)}", _jump_offset
    ),
    InstructionSpec(
        "CXNN", 0xF000, 0xC000,
        lambda o: f"{_reg(o.x)} = rand() & {_hex(o.nn, 2)}", _random_and,
    ),
    InstructionSpec(
        "DXYN", 0xF000, 0xD000,
        lambda o: f"draw({_reg(o.x)}, {_reg(o.y)}, {o.n})", _draw,
    ),
    InstructionSpec(
        "EX9E", 0xF0FF, 0xE09E, lambda o: f"if (key() == {_reg(o.x)})", _skip_key_eq
    ),
    InstructionSpec(
        "EXA1", 0xF0FF, 0xE0A1, lambda o: f"if (key() != {_reg(o.x)})", _skip_key_ne
    ),
    InstructionSpec("FX07", 0xF0FF, 0xF007, lambda o: f"{_reg(o.x)} = get_delay()", _get_delay),
    InstructionSpec("FX0A", 0xF0FF, 0xF00A, lambda o: f"{_reg(o.x)} = get_key()", _await_key),
    InstructionSpec("FX15", 0xF0FF, 0xF015, lambda o: f"delay_timer({_reg(o.x)})", _set_delay),
    InstructionSpec("FX18", 0xF0FF, 0xF018, lambda o: f"sound_timer({_reg(o.x)})", _set_sound),
    InstructionSpec("FX1E", 0xF0FF, 0xF01E, lambda o: f"I += {_reg(o.x)}", _add_index),
    InstructionSpec(
        "FX29", 0xF0FF, 0xF029, lambda o: f"I = sprite_addr[{_reg(o.x)}]", _glyph_address
    ),
    InstructionSpec("FX33", 0xF0FF, 0xF033, lambda o: f"set_BCD({_reg(o.x)})", _store_bcd),
    InstructionSpec(
        "FX55", 0xF0FF, 0xF055, lambda o: f"reg_dump({_reg(o.x)}, &I)", _reg_dump
    ),
    InstructionSpec(
        "FX65", 0xF0FF, 0xF065, lambda o: f"reg_load({_reg(o.x)}, &I)", _reg_load
    ),
)


@dataclass(frozen=True)
class DecodedInstruction:
    """An opcode bound to its table entry (``spec`` is None when unknown)."""

    opcode: int
    spec: Optional[InstructionSpec]

    @property
    def operands(self) -> Operands:
        return Operands(self.opcode)

    @property
    def is_known(self) -> bool:
        return self.spec is not None

    @property
    def pattern(self) -> str:
        if self.spec is None:
            return f"{self.opcode:04X}"
        return self.spec.pattern

    @property
    def text(self) -> str:
        if self.spec is None:
            return ""
        return self.spec.describe(self.operands)

    def execute(self, machine: "MachineState") -> Optional[int]:
        """Run against ``machine``; return the next PC or None to advance."""
        if self.spec is None:
            logger.debug("Ignoring unknown opcode %04X at 0x%03X", self.opcode, machine.pc)
            return None
        return self.spec.execute(machine, self.operands)

    def __str__(self) -> str:
        text = self.text
        return f"{self.opcode:04X}  {text}" if text else f"{self.opcode:04X}"


def find_spec(opcode: int) -> Optional[InstructionSpec]:
    for spec in INSTRUCTION_TABLE:
        if spec.matches(opcode):
            return spec
    return None


def decode(opcode: int) -> DecodedInstruction:
    """Decode a 16-bit opcode against ``INSTRUCTION_TABLE``."""
    opcode &= 0xFFFF
    return DecodedInstruction(opcode, find_spec(opcode))


def execute(machine: "MachineState", opcode: int) -> Optional[int]:
    return decode(opcode).execute(machine)


MemorySource = Union["MachineState", bytes, bytearray, memoryview, Sequence[int]]


def _read_word(source: MemorySource, address: int) -> int:
    if hasattr(source, "read_word"):
        return source.read_word(address)  # type: ignore[union-attr]
    return (source[address] << 8) | source[address + 1]  # type: ignore[index]


def disassemble(
    source: MemorySource, start: int, end: int
) -> Iterator[Tuple[int, int, str]]:
    """Yield ``(address, opcode, text)`` for each instruction word in
    ``[start, end)``.

    ``source`` is a machine or a raw byte sequence. Addresses step by two
    from ``start``.
    """
    for address in range(start, end - 1, 2):
        opcode = _read_word(source, address)
        yield address, opcode, decode(opcode).text
