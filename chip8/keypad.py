"""Hex keypad model: layout and host key translation.

The machine only sees a single optional pending key; this module maps host
key names onto that interface for input collaborators.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Protocol, Tuple

# COSMAC VIP keypad, row by row.
KEYPAD_LAYOUT: Tuple[Tuple[int, ...], ...] = (
    (0x1, 0x2, 0x3, 0xC),
    (0x4, 0x5, 0x6, 0xD),
    (0x7, 0x8, 0x9, 0xE),
    (0xA, 0x0, 0xB, 0xF),
)

# Conventional mapping of the keypad onto the left side of a QWERTY keyboard.
_HOST_ROWS = ("1234", "qwer", "asdf", "zxcv")


def _build_host_keymap() -> Dict[str, int]:
    keymap: Dict[str, int] = {}
    for host_row, keypad_row in zip(_HOST_ROWS, KEYPAD_LAYOUT):
        for host_key, key in zip(host_row, keypad_row):
            keymap[host_key] = key
    return keymap


DEFAULT_HOST_KEYMAP: Dict[str, int] = _build_host_keymap()


def key_label(key: int) -> str:
    """Return the keycap label for ``key`` (e.g. ``"A"``)."""
    return f"{key:X}"


class KeyTarget(Protocol):
    """Anything accepting key presses: a machine or a driver."""

    def press_key(self, key: Optional[int]) -> None: ...

    def release_key(self) -> None: ...


class _MachineTarget:
    """Adapt ``MachineState.press``/``release`` to :class:`KeyTarget`."""

    def __init__(self, machine) -> None:
        self._machine = machine

    def press_key(self, key: Optional[int]) -> None:
        self._machine.press(key)

    def release_key(self) -> None:
        self._machine.release()


class Keypad:
    """Translate host key events into the machine's pending-key input."""

    def __init__(self, target, keymap: Optional[Mapping[str, int]] = None) -> None:
        if not hasattr(target, "press_key"):
            target = _MachineTarget(target)
        self._target: KeyTarget = target
        self.keymap: Dict[str, int] = {
            name.lower(): key for name, key in (keymap or DEFAULT_HOST_KEYMAP).items()
        }
        for name, key in self.keymap.items():
            if not 0 <= key <= 0xF:
                raise ValueError(f"Invalid key {key} for host key {name!r}")
        self.held: Optional[int] = None

    def translate(self, host_key: str) -> Optional[int]:
        return self.keymap.get(host_key.lower())

    def press(self, key: int) -> None:
        self._target.press_key(key)
        self.held = key

    def release(self, key: Optional[int] = None) -> None:
        """Release ``key`` (or whatever is held); other keys are ignored."""
        if self.held is None:
            return
        if key is not None and key != self.held:
            return
        self._target.release_key()
        self.held = None

    def host_key_down(self, host_key: str) -> bool:
        """Press the keypad key mapped to ``host_key``; False when unmapped."""
        key = self.translate(host_key)
        if key is None:
            return False
        self.press(key)
        return True

    def host_key_up(self, host_key: str) -> bool:
        key = self.translate(host_key)
        if key is None:
            return False
        self.release(key)
        return True


__all__ = [
    "DEFAULT_HOST_KEYMAP",
    "KEYPAD_LAYOUT",
    "Keypad",
    "KeyTarget",
    "key_label",
]
