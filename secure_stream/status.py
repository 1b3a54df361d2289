"""
Stream status and the transition rules between states.

    NOT_OPEN -> OPENING -> OPEN -> AT_END
         |          |        |       |
         +----------+--------+-------+---> CLOSED
         +----------+--------+-----------> ERROR

CLOSED and ERROR are terminal.
"""

import enum
import logging

from .errors import InvalidState

logger = logging.getLogger(__name__)


class StreamStatus(enum.Enum):
    NOT_OPEN = "not-open"
    OPENING  = "opening"
    OPEN     = "open"
    AT_END   = "at-end"
    CLOSED   = "closed"
    ERROR    = "error"


_TRANSITIONS = {
    StreamStatus.NOT_OPEN: {StreamStatus.OPENING, StreamStatus.OPEN,
                            StreamStatus.CLOSED, StreamStatus.ERROR},
    StreamStatus.OPENING:  {StreamStatus.OPEN, StreamStatus.CLOSED,
                            StreamStatus.ERROR},
    StreamStatus.OPEN:     {StreamStatus.AT_END, StreamStatus.CLOSED,
                            StreamStatus.ERROR},
    StreamStatus.AT_END:   {StreamStatus.CLOSED},
    StreamStatus.CLOSED:   set(),
    StreamStatus.ERROR:    set(),
}


class StatusTracker:
    """Current status plus the error that put the stream into ERROR."""

    def __init__(self):
        self._status = StreamStatus.NOT_OPEN
        self._error  = None

    @property
    def status(self) -> StreamStatus:
        return self._status

    @property
    def error(self):
        return self._error

    @property
    def is_terminal(self) -> bool:
        return self._status in (StreamStatus.CLOSED, StreamStatus.ERROR)

    @property
    def is_readable(self) -> bool:
        return self._status in (StreamStatus.OPENING, StreamStatus.OPEN)

    def can_transition(self, status: StreamStatus) -> bool:
        return status in _TRANSITIONS[self._status]

    def transition(self, status: StreamStatus, error=None) -> None:
        """Move to `status`. Raises InvalidState on an illegal edge."""
        if not self.can_transition(status):
            raise InvalidState(
                f"illegal status transition {self._status.value} -> {status.value}")
        logger.debug(f"status {self._status.value} -> {status.value}")
        self._status = status
        if status is StreamStatus.ERROR:
            self._error = error

    def __repr__(self):
        return f"StatusTracker({self._status.value})"
