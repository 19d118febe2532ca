"""Canonical machine state snapshots and diff utilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .constants import DISPLAY_OFFSET, DISPLAY_SIZE
from .machine import MachineState


@dataclass(frozen=True)
class RegisterState:
    """Register file captured from the machine."""

    v: Tuple[int, ...]
    i: int
    pc: int
    sp: int
    dt: int
    st: int

    def as_dict(self) -> Dict[str, int]:
        values = {f"v{index:x}": value for index, value in enumerate(self.v)}
        values.update(i=self.i, pc=self.pc, sp=self.sp, dt=self.dt, st=self.st)
        return values


@dataclass(frozen=True)
class MachineSnapshot:
    """Composite immutable snapshot of the machine."""

    registers: RegisterState
    memory: bytes
    key: Optional[int]
    cycle: int

    @property
    def display(self) -> bytes:
        return self.memory[DISPLAY_OFFSET : DISPLAY_OFFSET + DISPLAY_SIZE]


@dataclass(frozen=True)
class FieldDiff:
    """Difference for a single named field."""

    name: str
    before: object
    after: object


@dataclass(frozen=True)
class StateDiff:
    """Aggregated differences between two machine snapshots."""

    registers: Tuple[FieldDiff, ...] = field(default_factory=tuple)
    memory_addresses: Tuple[int, ...] = field(default_factory=tuple)
    display_changed: bool = False
    key: Optional[FieldDiff] = None
    cycle: Optional[FieldDiff] = None

    def is_empty(self) -> bool:
        """Return True when no differences were recorded."""

        return (
            not self.registers
            and not self.memory_addresses
            and not self.display_changed
            and self.key is None
            and self.cycle is None
        )


def empty_state_diff() -> StateDiff:
    """Return a reusable empty diff instance."""

    return StateDiff()


def capture_state(machine: MachineState) -> MachineSnapshot:
    """Capture the current machine state as canonical snapshot."""

    registers = RegisterState(
        v=tuple(machine.v),
        i=machine.i,
        pc=machine.pc,
        sp=machine.sp,
        dt=machine.dt,
        st=machine.st,
    )
    return MachineSnapshot(
        registers=registers,
        memory=bytes(machine.memory),
        key=machine.key,
        cycle=machine.cycle,
    )


def diff_states(
    before: Optional[MachineSnapshot], after: MachineSnapshot
) -> StateDiff:
    """Compute structured differences between two machine snapshots."""

    if before is None:
        return empty_state_diff()

    register_diffs = tuple(
        _diff_mapping(before.registers.as_dict(), after.registers.as_dict())
    )
    memory_addresses = tuple(
        address
        for address, (old, new) in enumerate(zip(before.memory, after.memory))
        if old != new
    )
    key_diff = (
        FieldDiff("key", before.key, after.key) if before.key != after.key else None
    )
    cycle_diff = (
        FieldDiff("cycle", before.cycle, after.cycle)
        if before.cycle != after.cycle
        else None
    )
    return StateDiff(
        registers=register_diffs,
        memory_addresses=memory_addresses,
        display_changed=before.display != after.display,
        key=key_diff,
        cycle=cycle_diff,
    )


def _diff_mapping(before: Dict[str, int], after: Dict[str, int]) -> Iterable[FieldDiff]:
    for key in before:
        previous = before[key]
        current = after.get(key)
        if previous != current:
            yield FieldDiff(key, previous, current)


__all__ = [
    "RegisterState",
    "MachineSnapshot",
    "FieldDiff",
    "StateDiff",
    "capture_state",
    "diff_states",
    "empty_state_diff",
]
