"""
Stream events and the observer contract.

An observer is any object with a ``handle_event(stream, event)`` method.
Streams hold their observer weakly: whoever registers it keeps it alive.
"""

import enum
from abc import ABC, abstractmethod


class StreamEvent(enum.Enum):
    NONE                = 0
    OPEN_COMPLETED      = 1
    HAS_BYTES_AVAILABLE = 2
    END_ENCOUNTERED     = 3
    ERROR_OCCURRED      = 4


class StreamObserver(ABC):
    """Receives lifecycle notifications from an InputStream."""

    @abstractmethod
    def handle_event(self, stream, event: StreamEvent) -> None:
        ...
