"""Clock/driver: runs the fetch-execute cycle of a :class:`MachineState`."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Union

from .config import MachineConfig
from .events import MachineEvent
from .instructions import DecodedInstruction, decode
from .machine import MachineState
from .scheduler import TimerScheduler
from .state_model import MachineSnapshot, capture_state

logger = logging.getLogger(__name__)


class Chip8Driver:
    """Step the machine one instruction at a time, or free-run it.

    Free-running mode is a periodic task on a daemon thread paced at
    ``config.instruction_rate``. Every entry point that touches the machine
    takes the driver lock, so key presses, program loads and resets
    interleave between instructions rather than during one.
    """

    def __init__(
        self,
        machine: Optional[MachineState] = None,
        config: Optional[MachineConfig] = None,
    ) -> None:
        self.config = config or MachineConfig()
        if machine is None:
            machine = MachineState(seed=self.config.seed)
        elif self.config.seed is not None:
            machine.seed(self.config.seed)
        self.machine = machine
        self.scheduler = TimerScheduler(timer_cycle=self.config.timer_cycle)
        self.instruction_count = 0
        self.last_error: Optional[BaseException] = None

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._runner_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #
    def fetch(self) -> DecodedInstruction:
        """Decode the instruction at PC without executing it."""
        with self._lock:
            return decode(self.machine.read_word(self.machine.pc))

    def step(self) -> DecodedInstruction:
        """Execute one instruction and return it.

        Errors raised by the instruction (stack faults) propagate; PC, the
        timers and the instruction counter are left as they were.
        """
        with self._lock:
            machine = self.machine
            machine.events.emit(MachineEvent.step())

            instruction = decode(machine.read_word(machine.pc))
            next_pc = instruction.execute(machine)
            if next_pc is None:
                next_pc = machine.next_pc()
            machine.set_pc(next_pc)

            self.instruction_count += 1
            self.scheduler.advance(machine)
            return instruction

    def run(self, max_instructions: int) -> int:
        """Execute up to ``max_instructions`` synchronously; return the count."""
        executed = 0
        while executed < max_instructions:
            self.step()
            executed += 1
        return executed

    # ------------------------------------------------------------------ #
    # Free-running mode
    # ------------------------------------------------------------------ #
    @property
    def is_running(self) -> bool:
        thread = self._runner_thread
        return (
            thread is not None
            and thread.is_alive()
            and not self._stop_event.is_set()
        )

    def start(self) -> None:
        """Start free-running execution (no-op when already running)."""
        if self.is_running:
            return
        self._join_runner()
        if self._runner_thread is not None:
            # The old loop still shares _stop_event; clearing it would revive it.
            raise RuntimeError("Previous runner thread has not exited")
        self.last_error = None
        self._stop_event.clear()
        self._runner_thread = threading.Thread(
            target=self._runner_loop, name="Chip8Runner", daemon=True
        )
        self._runner_thread.start()
        logger.info(
            "Started free-running mode at %d instructions/s",
            self.config.instruction_rate,
        )

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        """Stop free-running execution; machine state is kept."""
        was_running = self.is_running
        self._stop_event.set()
        self._join_runner(timeout)
        if was_running:
            logger.info(
                "Stopped free-running mode after %d instructions",
                self.instruction_count,
            )

    def _join_runner(self, timeout: Optional[float] = 1.0) -> None:
        thread = self._runner_thread
        if thread is None or thread is threading.current_thread():
            return
        if thread.is_alive():
            thread.join(timeout=timeout)
        if not thread.is_alive():
            self._runner_thread = None

    def _runner_loop(self) -> None:
        """Background loop for paced execution."""
        interval = self.config.step_interval
        deadline = time.perf_counter()
        while not self._stop_event.is_set():
            try:
                self.step()
            except Exception as exc:  # surfaced through last_error
                logger.exception("Free-running mode halted at PC=0x%03X", self.machine.pc)
                self.last_error = exc
                self._stop_event.set()
                break

            deadline += interval
            delay = deadline - time.perf_counter()
            if delay > 0:
                self._stop_event.wait(delay)
            else:
                # Running behind; do not try to catch up in a burst.
                deadline = time.perf_counter()

    # ------------------------------------------------------------------ #
    # Input, loading and inspection
    # ------------------------------------------------------------------ #
    def press_key(self, key: Optional[int]) -> None:
        with self._lock:
            self.machine.press(key)

    def release_key(self) -> None:
        with self._lock:
            self.machine.release()

    def load_program(self, image: Union[bytes, bytearray, memoryview]) -> None:
        with self._lock:
            self.machine.load_program(image)

    def reset(self) -> None:
        """Reset the machine and the instruction counter."""
        with self._lock:
            self.machine.reset()
            self.instruction_count = 0

    def snapshot(self) -> MachineSnapshot:
        with self._lock:
            return capture_state(self.machine)

    def __enter__(self) -> "Chip8Driver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


__all__ = ["Chip8Driver"]
