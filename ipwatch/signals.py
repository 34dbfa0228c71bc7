from collections.abc import Callable
from enum import Enum
from itertools import count
from typing import Any

from ipwatch.logger import logger


class PresenceStatus(str, Enum):
    """Session presence as reported by the session service."""

    active = "active"
    idle = "idle"


class Signal:
    """Minimal connect/disconnect/emit hub for an external event source.

    The session-presence service and the network-availability monitor are both
    modelled as a Signal. Consumers `connect` a callback and keep the returned
    handle to `disconnect` later; producers call `emit`.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: dict[int, Callable[..., Any]] = {}
        self._ids = count(1)

    def connect(self, callback: Callable[..., Any]) -> int:
        handle = next(self._ids)
        self._handlers[handle] = callback
        return handle

    def disconnect(self, handle: int) -> None:
        self._handlers.pop(handle, None)

    @property
    def receiver_count(self) -> int:
        return len(self._handlers)

    def emit(self, *args: Any) -> None:
        """Deliver the event to every connected callback.

        A failing receiver is logged and does not prevent delivery to the others.
        """
        # Receivers may disconnect themselves (or others) while handling the event.
        for handle, callback in list(self._handlers.items()):
            if handle not in self._handlers:
                continue
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Signal receiver failed signal={self.name} handle={handle}")
