from chip8.constants import DISPLAY_OFFSET, DISPLAY_SIZE
from chip8.machine import MachineState
from chip8.state_model import (
    FieldDiff,
    capture_state,
    diff_states,
    empty_state_diff,
)


def test_capture_copies_machine_state() -> None:
    machine = MachineState()
    machine.set_v(2, 0x22)
    machine.set_i(0x345)
    machine.press(9)
    snapshot = capture_state(machine)

    machine.set_v(2, 0)
    machine.set_memory(0xFF, 0x300)

    assert snapshot.registers.v[2] == 0x22
    assert snapshot.registers.i == 0x345
    assert snapshot.memory[0x300] == 0
    assert snapshot.key == 9
    assert len(snapshot.display) == DISPLAY_SIZE


def test_register_dict_names() -> None:
    snapshot = capture_state(MachineState())
    names = list(snapshot.registers.as_dict())
    assert names[:16] == [f"v{index:x}" for index in range(16)]
    assert names[16:] == ["i", "pc", "sp", "dt", "st"]


def test_diff_of_identical_snapshots_is_empty() -> None:
    machine = MachineState()
    assert diff_states(capture_state(machine), capture_state(machine)).is_empty()
    assert empty_state_diff().is_empty()


def test_diff_without_baseline_is_empty() -> None:
    assert diff_states(None, capture_state(MachineState())).is_empty()


def test_diff_reports_changes() -> None:
    machine = MachineState()
    before = capture_state(machine)

    machine.set_v(0xF, 1)
    machine.set_pc(0x202)
    machine.set_memory(b"\x01\x02", 0x400)
    machine.display.set_bit(0, 0, True)
    machine.press(3)
    machine.cycle = 1

    diff = diff_states(before, capture_state(machine))

    assert diff.registers == (FieldDiff("vf", 0, 1), FieldDiff("pc", 0, 0x202))
    assert diff.memory_addresses == (0x400, 0x401, DISPLAY_OFFSET)
    assert diff.display_changed
    assert diff.key == FieldDiff("key", None, 3)
    assert diff.cycle == FieldDiff("cycle", 0, 1)
    assert not diff.is_empty()


def test_memory_only_change_leaves_display_untouched() -> None:
    machine = MachineState()
    before = capture_state(machine)
    machine.set_memory(0x42, 0x250)
    diff = diff_states(before, capture_state(machine))
    assert diff.memory_addresses == (0x250,)
    assert not diff.display_changed
    assert diff.registers == ()
