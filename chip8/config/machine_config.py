"""Machine configuration for the CHIP-8 driver."""

from dataclasses import asdict, dataclass
from typing import Optional
import json

from ..constants import INSTRUCTION_RATE, TIMER_CYCLE


@dataclass
class MachineConfig:
    """Driver timing and randomness settings."""
    name: str = "CHIP-8"
    instruction_rate: int = INSTRUCTION_RATE  # instructions per second
    timer_cycle: int = TIMER_CYCLE  # instructions per timer decrement
    seed: Optional[int] = None  # random-AND generator seed

    def __post_init__(self):
        self.validate()

    @property
    def step_interval(self) -> float:
        """Seconds between instructions in free-running mode."""
        return 1.0 / self.instruction_rate

    def validate(self) -> None:
        if self.instruction_rate <= 0:
            raise ValueError(f"Invalid instruction rate {self.instruction_rate}. Must be positive")
        if self.timer_cycle <= 0:
            raise ValueError(f"Invalid timer cycle {self.timer_cycle}. Must be positive")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'MachineConfig':
        return cls(
            name=data.get("name", "CHIP-8"),
            instruction_rate=int(data.get("instruction_rate", INSTRUCTION_RATE)),
            timer_cycle=int(data.get("timer_cycle", TIMER_CYCLE)),
            seed=data.get("seed"),
        )

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> 'MachineConfig':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls.from_dict(data)
