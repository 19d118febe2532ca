"""Shared pytest fixtures for CHIP-8 core tests."""

from __future__ import annotations

from typing import Iterable

import pytest

from chip8.constants import PROGRAM_OFFSET
from chip8.driver import Chip8Driver
from chip8.events import EventRecorder
from chip8.machine import MachineState


def assemble(*opcodes: int) -> bytes:
    """Pack opcodes into a big-endian program image."""
    return b"".join(opcode.to_bytes(2, "big") for opcode in opcodes)


@pytest.fixture
def machine() -> MachineState:
    state = MachineState(seed=1234)
    state.set_pc(PROGRAM_OFFSET)
    return state


@pytest.fixture
def recorder(machine: MachineState) -> EventRecorder:
    events = EventRecorder()
    machine.events.subscribe(events)
    return events


@pytest.fixture
def driver() -> Iterable[Chip8Driver]:
    drv = Chip8Driver()
    yield drv
    drv.stop()
