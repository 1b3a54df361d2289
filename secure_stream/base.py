"""
InputStream — the pull-based, event-notified stream contract.

Both the cleartext sources and SecureInputStream implement it, so a
SecureInputStream can stand anywhere a source can (including wrapping
another SecureInputStream).

read(buffer, max_len) follows the usual pull-stream convention:
    > 0  bytes written into buffer
    0    end of stream, or nothing ready yet (wait for the next event)
    -1   error; see stream_error
"""

import weakref
from abc import ABC, abstractmethod
from typing import Any, Optional

from .events import StreamEvent
from .status import StreamStatus

DEFAULT_MODE = "default"


class InputStream(ABC):
    """Readable, schedulable, closable byte stream."""

    def __init__(self):
        self._observer_ref = None

    # ── observer (weak back-reference) ───────────────────────────────────────
    @property
    def observer(self):
        if self._observer_ref is None:
            return None
        return self._observer_ref()

    @observer.setter
    def observer(self, observer) -> None:
        self._observer_ref = weakref.ref(observer) if observer is not None else None

    def get_observer(self):
        return self.observer

    def set_observer(self, observer) -> None:
        self.observer = observer

    def _notify(self, event: StreamEvent) -> None:
        observer = self.observer
        if observer is not None:
            observer.handle_event(self, event)

    # ── lifecycle ────────────────────────────────────────────────────────────
    @abstractmethod
    def open(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    # ── reading ──────────────────────────────────────────────────────────────
    @abstractmethod
    def read(self, buffer, max_len: int) -> int:
        ...

    @abstractmethod
    def has_bytes_available(self) -> bool:
        ...

    @property
    @abstractmethod
    def stream_status(self) -> StreamStatus:
        ...

    @property
    @abstractmethod
    def stream_error(self) -> Optional[Any]:
        ...

    # ── scheduling / properties ──────────────────────────────────────────────
    @abstractmethod
    def schedule(self, loop, mode: str = DEFAULT_MODE) -> None:
        ...

    @abstractmethod
    def unschedule(self, loop, mode: str = DEFAULT_MODE) -> None:
        ...

    @abstractmethod
    def get_property(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set_property(self, key: str, value: Any) -> bool:
        ...
