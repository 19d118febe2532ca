"""Delay/sound timer scheduler for the CHIP-8 driver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .constants import TIMER_CYCLE

if TYPE_CHECKING:
    from .machine import MachineState


@dataclass
class TimerScheduler:
    """Decrement DT and ST once every ``timer_cycle`` executed instructions.

    The instruction counter lives in ``MachineState.cycle`` so that a machine
    reset also restarts the timer cadence.
    """

    timer_cycle: int = TIMER_CYCLE
    enabled: bool = True

    def __post_init__(self) -> None:
        self.timer_cycle = int(self.timer_cycle)
        if self.timer_cycle <= 0:
            raise ValueError(f"Invalid timer cycle: {self.timer_cycle}")

    def advance(self, machine: "MachineState") -> bool:
        """Count one executed instruction; return True when the timers ticked."""

        machine.cycle = (machine.cycle + 1) % self.timer_cycle
        if machine.cycle != 0 or not self.enabled:
            return False

        if machine.dt != 0:
            machine.set_dt(machine.dt - 1)
        if machine.st != 0:
            machine.set_st(machine.st - 1)
        return True


__all__ = ["TimerScheduler"]
