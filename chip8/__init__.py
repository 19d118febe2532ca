"""CHIP-8 virtual machine package."""

from .config import MachineConfig
from .driver import Chip8Driver
from .errors import Chip8Error, ProgramTooLarge, StackOverflow, StackUnderflow
from .events import (
    EventDispatcher,
    EventRecorder,
    MachineEvent,
    MachineEventType,
    RegisterName,
)
from .instructions import INSTRUCTION_TABLE, DecodedInstruction, decode, disassemble
from .keypad import DEFAULT_HOST_KEYMAP, KEYPAD_LAYOUT, Keypad
from .machine import MachineState
from .scheduler import TimerScheduler
from .state_model import (
    FieldDiff,
    MachineSnapshot,
    RegisterState,
    StateDiff,
    capture_state,
    diff_states,
    empty_state_diff,
)

__all__ = [
    "Chip8Driver",
    "MachineConfig",
    "MachineState",
    "TimerScheduler",
    "Chip8Error",
    "ProgramTooLarge",
    "StackOverflow",
    "StackUnderflow",
    "EventDispatcher",
    "EventRecorder",
    "MachineEvent",
    "MachineEventType",
    "RegisterName",
    "INSTRUCTION_TABLE",
    "DecodedInstruction",
    "decode",
    "disassemble",
    "DEFAULT_HOST_KEYMAP",
    "KEYPAD_LAYOUT",
    "Keypad",
    "RegisterState",
    "MachineSnapshot",
    "FieldDiff",
    "StateDiff",
    "capture_state",
    "diff_states",
    "empty_state_diff",
]
