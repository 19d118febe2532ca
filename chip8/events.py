"""Machine notification events and the publish/subscribe dispatcher."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple


class MachineEventType(Enum):
    """Kinds of notifications emitted by the machine."""

    MEMORY = "memory"
    REGISTER = "register"
    DISPLAY_CLEARED = "clear"
    DISPLAY_UPDATED = "display"
    STEP = "step"


class RegisterName(str, Enum):
    """Register names carried by ``REGISTER`` events."""

    I = "i"  # noqa: E741
    PC = "pc"
    SP = "sp"
    DT = "dt"
    ST = "st"
    V = "v"


@dataclass(frozen=True)
class MachineEvent:
    """Structured machine notification.

    Only the fields relevant to ``type`` are populated:

    * ``MEMORY``: ``offset``, ``length``
    * ``REGISTER``: ``name`` and, for V registers, ``index``
    * ``DISPLAY_UPDATED``: ``x``, ``y``, ``height``
    """

    type: MachineEventType
    offset: Optional[int] = None
    length: Optional[int] = None
    name: Optional[RegisterName] = None
    index: Optional[int] = None
    x: Optional[int] = None
    y: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def memory_changed(cls, offset: int, length: int) -> "MachineEvent":
        return cls(MachineEventType.MEMORY, offset=offset, length=length)

    @classmethod
    def register_changed(
        cls, name: RegisterName, index: Optional[int] = None
    ) -> "MachineEvent":
        return cls(MachineEventType.REGISTER, name=name, index=index)

    @classmethod
    def display_cleared(cls) -> "MachineEvent":
        return cls(MachineEventType.DISPLAY_CLEARED)

    @classmethod
    def display_updated(cls, x: int, y: int, height: int) -> "MachineEvent":
        return cls(MachineEventType.DISPLAY_UPDATED, x=x, y=y, height=height)

    @classmethod
    def step(cls) -> "MachineEvent":
        return cls(MachineEventType.STEP)


Observer = Callable[[MachineEvent], None]


class EventDispatcher:
    """Dispatches machine events to registered observers."""

    def __init__(self) -> None:
        self._observers: List[Tuple[Observer, Optional[FrozenSet[MachineEventType]]]] = []

    # ------------------------------------------------------------------ #
    # Observer management
    # ------------------------------------------------------------------ #
    def subscribe(self, observer: Observer, *types: MachineEventType) -> None:
        """Register ``observer`` for ``types`` (all event types when empty)."""
        self.unsubscribe(observer)
        self._observers.append((observer, frozenset(types) if types else None))

    def unsubscribe(self, observer: Observer) -> None:
        self._observers = [
            entry for entry in self._observers if entry[0] is not observer
        ]

    def observers(self) -> Iterable[Observer]:
        return tuple(observer for observer, _ in self._observers)

    def has_observers(self) -> bool:
        return bool(self._observers)

    # ------------------------------------------------------------------ #
    # Emission
    # ------------------------------------------------------------------ #
    def emit(self, event: MachineEvent) -> None:
        for observer, types in tuple(self._observers):
            if types is None or event.type in types:
                observer(event)


class EventRecorder:
    """Observer that keeps every received event, mostly for tests and views."""

    def __init__(self) -> None:
        self.events: List[MachineEvent] = []

    def __call__(self, event: MachineEvent) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()

    def of_type(self, event_type: MachineEventType) -> List[MachineEvent]:
        return [event for event in self.events if event.type == event_type]

    def counts(self) -> Dict[MachineEventType, int]:
        result: Dict[MachineEventType, int] = {}
        for event in self.events:
            result[event.type] = result.get(event.type, 0) + 1
        return result


__all__ = [
    "EventDispatcher",
    "EventRecorder",
    "MachineEvent",
    "MachineEventType",
    "Observer",
    "RegisterName",
]
