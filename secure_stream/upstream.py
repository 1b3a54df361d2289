"""
UpstreamReader — pulls cleartext from the wrapped source.

pull() tells apart the three "no data" outcomes a source can have:

    WOULD_BLOCK     nothing ready yet; wait for the next event
    END_OF_STREAM   the source is exhausted
    UpstreamError   the source failed (raised)
"""

import enum
import logging

from .errors import UpstreamError
from .status import StreamStatus

logger = logging.getLogger(__name__)


class Pull(enum.Enum):
    WOULD_BLOCK   = "would-block"
    END_OF_STREAM = "end-of-stream"


WOULD_BLOCK   = Pull.WOULD_BLOCK
END_OF_STREAM = Pull.END_OF_STREAM


class UpstreamReader:
    """Non-blocking pull adapter over an InputStream."""

    def __init__(self, stream):
        self._stream     = stream
        self._bytes_read = 0

    @property
    def stream(self):
        return self._stream

    @property
    def bytes_read(self) -> int:
        return self._bytes_read

    def pull(self, max_len: int):
        """Returns non-empty bytes, WOULD_BLOCK or END_OF_STREAM."""
        stream = self._stream
        status = stream.stream_status
        if status is StreamStatus.ERROR:
            raise UpstreamError(stream.stream_error)
        if status in (StreamStatus.AT_END, StreamStatus.CLOSED):
            return END_OF_STREAM
        if max_len <= 0 or not stream.has_bytes_available():
            return WOULD_BLOCK

        buf = bytearray(max_len)
        n = stream.read(buf, max_len)
        if n < 0:
            raise UpstreamError(stream.stream_error)
        if n == 0:
            if stream.stream_status is StreamStatus.AT_END:
                return END_OF_STREAM
            return WOULD_BLOCK
        self._bytes_read += n
        logger.debug(f"pulled {n}B cleartext (total {self._bytes_read}B)")
        return bytes(buf[:n])
