"""Driver tests: fetch-execute cycle, timers, faults and free-running mode."""

from __future__ import annotations

import random
import threading
import time

import pytest

from chip8.config import MachineConfig
from chip8.constants import DISPLAY_OFFSET, DISPLAY_SIZE, FONT, PROGRAM_OFFSET
from chip8.driver import Chip8Driver
from chip8.errors import StackOverflow, StackUnderflow
from chip8.events import EventRecorder, MachineEventType, RegisterName
from chip8.machine import MachineState
from chip8.state_model import MachineSnapshot

from conftest import assemble


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class TestStepping:
    def test_load_and_add(self, driver):
        recorder = EventRecorder()
        driver.machine.events.subscribe(recorder, MachineEventType.REGISTER)
        driver.load_program(assemble(0x6005, 0x7003))

        driver.step()
        driver.step()

        assert driver.machine.v[0] == 8
        assert driver.machine.pc == PROGRAM_OFFSET + 4
        v0_events = [
            event
            for event in recorder.events
            if event.name == RegisterName.V and event.index == 0
        ]
        assert len(v0_events) == 2

    def test_register_dump_program(self, driver):
        driver.load_program(assemble(0x6012, 0xA300, 0xF055))
        assert driver.run(3) == 3
        assert driver.machine.memory[0x300] == 0x12
        assert driver.machine.i == 0x300

    def test_clear_then_draw(self, driver):
        machine = driver.machine
        machine.set_memory(0xFF, DISPLAY_OFFSET, DISPLAY_SIZE)
        driver.load_program(assemble(0x00E0, 0xD015))
        seen = []
        machine.events.subscribe(
            lambda event: seen.append(bytes(machine.memory[DISPLAY_OFFSET:])),
            MachineEventType.STEP,
        )

        driver.step()
        driver.step()

        assert seen[1] == bytes(DISPLAY_SIZE)
        for row in range(5):
            assert machine.memory[DISPLAY_OFFSET + row * 8] == FONT[row]
        assert machine.v[0xF] == 0

    def test_step_returns_decoded_instruction(self, driver):
        driver.load_program(assemble(0x1234))
        assert driver.fetch().pattern == "1NNN"
        assert driver.machine.pc == PROGRAM_OFFSET
        instruction = driver.step()
        assert instruction.opcode == 0x1234
        assert driver.machine.pc == 0x234
        assert driver.instruction_count == 1

    def test_step_event_precedes_execution(self, driver):
        recorder = EventRecorder()
        driver.machine.events.subscribe(recorder)
        driver.load_program(assemble(0x6005))
        recorder.clear()
        driver.step()
        assert recorder.events[0].type == MachineEventType.STEP
        assert recorder.counts()[MachineEventType.STEP] == 1

    def test_unknown_opcode_advances(self, driver):
        driver.load_program(assemble(0xFFFF))
        driver.step()
        assert driver.machine.pc == PROGRAM_OFFSET + 2

    def test_jump_to_zero_is_honoured(self, driver):
        driver.load_program(assemble(0x1000))
        driver.step()
        assert driver.machine.pc == 0

    def test_call_and_return(self, driver):
        driver.load_program(assemble(0x2206, 0x1202, 0x0000, 0x6A07, 0x00EE))
        driver.run(3)
        assert driver.machine.v[0xA] == 7
        assert driver.machine.pc == PROGRAM_OFFSET + 2
        assert driver.machine.sp == 0


class TestTimers:
    def test_timers_decrement_every_other_instruction(self, driver):
        machine = driver.machine
        driver.load_program(assemble(0x1200))
        machine.set_dt(5)
        machine.set_st(0)

        driver.step()
        assert machine.dt == 5
        driver.step()
        assert machine.dt == 4
        assert machine.st == 0

        driver.run(20)
        assert machine.dt == 0

    def test_timers_are_independent(self, driver):
        machine = driver.machine
        driver.load_program(assemble(0x1200))
        machine.set_dt(1)
        machine.set_st(3)
        driver.run(4)
        assert (machine.dt, machine.st) == (0, 1)

    def test_custom_timer_cycle(self):
        driver = Chip8Driver(config=MachineConfig(timer_cycle=3))
        driver.load_program(assemble(0x1200))
        driver.machine.set_dt(2)
        driver.run(2)
        assert driver.machine.dt == 2
        driver.step()
        assert driver.machine.dt == 1


class TestAwaitKey:
    def test_waits_until_key_pressed(self, driver):
        driver.load_program(assemble(0xF30A, 0x1202))
        driver.run(5)
        assert driver.machine.pc == PROGRAM_OFFSET
        assert driver.instruction_count == 5

        driver.press_key(6)
        driver.step()
        assert driver.machine.v[3] == 6
        assert driver.machine.pc == PROGRAM_OFFSET + 2
        assert driver.machine.key == 6

        driver.release_key()
        assert driver.machine.key is None


class TestFaults:
    def test_stack_overflow(self, driver):
        driver.load_program(assemble(0x2200))
        driver.run(16)
        assert driver.machine.sp == 32

        with pytest.raises(StackOverflow):
            driver.step()

        assert driver.machine.sp == 32
        assert driver.machine.pc == PROGRAM_OFFSET
        assert driver.instruction_count == 16

    def test_stack_underflow(self, driver):
        driver.load_program(assemble(0x00EE))
        with pytest.raises(StackUnderflow):
            driver.step()
        assert driver.machine.pc == PROGRAM_OFFSET
        assert driver.instruction_count == 0


class TestLifecycle:
    def test_reset(self, driver):
        driver.load_program(assemble(0x6005, 0x1202))
        driver.run(3)
        driver.reset()
        assert driver.instruction_count == 0
        assert driver.machine.pc == 0
        assert driver.machine.v[0] == 0
        assert driver.machine.cycle == 0

    def test_config_seed(self):
        driver = Chip8Driver(config=MachineConfig(seed=5))
        driver.load_program(assemble(0xC1FF))
        driver.step()
        assert driver.machine.v[1] == random.Random(5).randrange(256)

    def test_seed_applies_to_supplied_machine(self):
        machine = MachineState(seed=1)
        driver = Chip8Driver(machine=machine, config=MachineConfig(seed=9))
        assert driver.machine is machine
        assert machine.rand() == random.Random(9).randrange(256)

    def test_snapshot(self, driver):
        driver.load_program(assemble(0x6A42))
        driver.step()
        snapshot = driver.snapshot()
        assert isinstance(snapshot, MachineSnapshot)
        assert snapshot.registers.v[0xA] == 0x42
        assert snapshot.registers.pc == PROGRAM_OFFSET + 2


class TestFreeRunning:
    def test_start_and_stop(self):
        driver = Chip8Driver(config=MachineConfig(instruction_rate=2000))
        driver.load_program(assemble(0x1200))
        try:
            driver.start()
            assert driver.is_running
            assert _wait_for(lambda: driver.instruction_count > 5)
        finally:
            driver.stop()

        assert not driver.is_running
        count = driver.instruction_count
        time.sleep(0.02)
        assert driver.instruction_count == count
        assert driver.machine.pc == PROGRAM_OFFSET
        assert driver.last_error is None

    def test_start_is_idempotent(self):
        driver = Chip8Driver(config=MachineConfig(instruction_rate=2000))
        driver.load_program(assemble(0x1200))
        try:
            driver.start()
            thread = driver._runner_thread
            driver.start()
            assert driver._runner_thread is thread
        finally:
            driver.stop()

    def test_restart_refused_while_old_runner_is_stuck(self):
        driver = Chip8Driver(config=MachineConfig(instruction_rate=2000))
        driver.load_program(assemble(0x1200))
        entered = threading.Event()
        gate = threading.Event()

        def slow_step(event):
            entered.set()
            gate.wait(5.0)

        driver.machine.events.subscribe(slow_step, MachineEventType.STEP)
        try:
            driver.start()
            assert entered.wait(2.0)
            driver.stop(timeout=0.01)
            assert not driver.is_running

            with pytest.raises(RuntimeError):
                driver.start()
        finally:
            gate.set()
            driver.stop()

        assert not driver.is_running
        assert driver._runner_thread is None

    def test_fault_stops_runner(self):
        driver = Chip8Driver(config=MachineConfig(instruction_rate=2000))
        driver.load_program(assemble(0x00EE))
        driver.start()
        try:
            assert _wait_for(lambda: driver.last_error is not None)
            assert _wait_for(lambda: not driver.is_running)
        finally:
            driver.stop()
        assert isinstance(driver.last_error, StackUnderflow)
        assert driver.machine.pc == PROGRAM_OFFSET

    def test_context_manager_stops(self):
        with Chip8Driver(config=MachineConfig(instruction_rate=2000)) as driver:
            driver.load_program(assemble(0x1200))
            driver.start()
            assert _wait_for(lambda: driver.instruction_count > 0)
        assert not driver.is_running

    def test_keys_reach_running_program(self):
        driver = Chip8Driver(config=MachineConfig(instruction_rate=2000))
        driver.load_program(assemble(0xF40A, 0x1202))
        try:
            driver.start()
            time.sleep(0.01)
            assert driver.machine.pc == PROGRAM_OFFSET
            driver.press_key(0xC)
            assert _wait_for(lambda: driver.machine.v[4] == 0xC)
        finally:
            driver.stop()
