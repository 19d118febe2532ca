"""Configuration system for the CHIP-8 driver."""

from .machine_config import MachineConfig

__all__ = ["MachineConfig"]
