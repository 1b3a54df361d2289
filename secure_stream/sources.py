"""
Cleartext sources
=================
Concrete InputStreams to feed a SecureInputStream.

    BytesInputStream   in-memory bytes, or an iterable of chunks
    FileInputStream    a binary file, by path or file object

Unscheduled, a source just serves read() calls. Once scheduled on an
asyncio event loop it also posts events to its observer with
loop.call_soon():

    open()                       OPEN_COMPLETED, then HAS_BYTES_AVAILABLE
    read() with more to come     HAS_BYTES_AVAILABLE
    read() hits the end          END_ENCOUNTERED
    read() fails                 ERROR_OCCURRED
"""

import logging
import os
from typing import Any, Iterable, Optional, Union

from .base import DEFAULT_MODE, InputStream
from .events import StreamEvent
from .status import StreamStatus

logger = logging.getLogger(__name__)


class _PostingInputStream(InputStream):
    """Status, properties and loop registration shared by the sources."""

    def __init__(self):
        super().__init__()
        self._status     = StreamStatus.NOT_OPEN
        self._error      = None
        self._properties = {}
        self._loops      = []   # (loop, mode)

    @property
    def stream_status(self) -> StreamStatus:
        return self._status

    @property
    def stream_error(self):
        return self._error

    # ── subclass hooks ───────────────────────────────────────────────────────
    def _do_open(self) -> None:
        pass

    def _do_close(self) -> None:
        pass

    def _has_more(self) -> bool:
        raise NotImplementedError

    def _known_empty(self) -> bool:
        return False

    def _read_chunk(self, max_len: int) -> bytes:
        raise NotImplementedError

    # ── InputStream ──────────────────────────────────────────────────────────
    def open(self) -> None:
        if self._status is not StreamStatus.NOT_OPEN:
            return
        try:
            self._do_open()
        except OSError as exc:
            self._set_error(exc)
            return
        self._status = StreamStatus.AT_END if self._known_empty() else StreamStatus.OPEN
        self._post(StreamEvent.OPEN_COMPLETED)
        self._post_progress()

    def close(self) -> None:
        if self._status is StreamStatus.CLOSED:
            return
        self._status = StreamStatus.CLOSED
        self._do_close()
        logger.debug(f"{type(self).__name__} closed")

    def read(self, buffer, max_len: int) -> int:
        if self._status is StreamStatus.AT_END:
            return 0
        if self._status is not StreamStatus.OPEN:
            return -1
        max_len = min(max_len, len(buffer))
        if max_len <= 0:
            return 0
        try:
            data = self._read_chunk(max_len)
        except OSError as exc:
            self._set_error(exc)
            return -1
        n = len(data)
        buffer[:n] = data
        if not n or not self._has_more():
            self._status = StreamStatus.AT_END
        self._post_progress()
        return n

    def has_bytes_available(self) -> bool:
        return self._status is StreamStatus.OPEN and self._has_more()

    def schedule(self, loop, mode: str = DEFAULT_MODE) -> None:
        if (loop, mode) in self._loops:
            return
        self._loops.append((loop, mode))
        if self._status in (StreamStatus.OPEN, StreamStatus.AT_END):
            self._post_progress()

    def unschedule(self, loop, mode: str = DEFAULT_MODE) -> None:
        if (loop, mode) in self._loops:
            self._loops.remove((loop, mode))

    def get_property(self, key: str) -> Optional[Any]:
        return self._properties.get(key)

    def set_property(self, key: str, value: Any) -> bool:
        self._properties[key] = value
        return True

    # ── event posting ────────────────────────────────────────────────────────
    def _set_error(self, error) -> None:
        logger.warning(f"{type(self).__name__} failed: {error}")
        self._status = StreamStatus.ERROR
        self._error  = error
        self._post(StreamEvent.ERROR_OCCURRED)

    def _post_progress(self) -> None:
        if self._status is StreamStatus.AT_END:
            self._post(StreamEvent.END_ENCOUNTERED)
        elif self.has_bytes_available():
            self._post(StreamEvent.HAS_BYTES_AVAILABLE)

    def _post(self, event: StreamEvent) -> None:
        posted = []
        for loop, _mode in self._loops:
            if any(loop is seen for seen in posted):
                continue
            posted.append(loop)
            loop.call_soon(self._deliver, event)

    def _deliver(self, event: StreamEvent) -> None:
        if self._status is StreamStatus.CLOSED:
            return
        self._notify(event)


class BytesInputStream(_PostingInputStream):
    """
    Serves bytes from memory. `data` is either one bytes object or an
    iterable of chunks; a read never crosses a chunk boundary, so chunk
    sizes seen by the reader follow the chunks given here.
    """

    def __init__(self, data: Union[bytes, Iterable[bytes]] = b"",
                 chunk_size: int = None):
        super().__init__()
        if isinstance(data, (bytes, bytearray, memoryview)):
            data = bytes(data)
            if chunk_size:
                chunks = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]
            else:
                chunks = [data]
        else:
            chunks = [bytes(c) for c in data]
        self._chunks = [c for c in chunks if c]
        self._offset = 0

    def _has_more(self) -> bool:
        return bool(self._chunks)

    def _known_empty(self) -> bool:
        return not self._chunks

    def _read_chunk(self, max_len: int) -> bytes:
        if not self._chunks:
            return b""
        head = self._chunks[0]
        data = head[self._offset:self._offset + max_len]
        self._offset += len(data)
        if self._offset >= len(head):
            self._chunks.pop(0)
            self._offset = 0
        return data

    def _do_close(self) -> None:
        self._chunks = []


class FileInputStream(_PostingInputStream):
    """
    Reads a binary file. Pass a path (opened on open()) or an already
    open binary file object. Either way the file is closed by close().
    Read-only property "file_offset" reports the current position.
    """

    def __init__(self, file):
        super().__init__()
        if isinstance(file, (str, bytes, os.PathLike)):
            self._path = file
            self._file = None
        else:
            self._path = None
            self._file = file
        self._eof = False

    def _do_open(self) -> None:
        if self._file is None:
            self._file = open(self._path, "rb")
        logger.debug(f"FileInputStream opened: {self._path or self._file!r}")

    def _do_close(self) -> None:
        if self._file is not None:
            self._file.close()

    def _has_more(self) -> bool:
        return not self._eof

    def _read_chunk(self, max_len: int) -> bytes:
        data = self._file.read(max_len)
        if not data:
            self._eof = True
        return data

    def get_property(self, key: str) -> Optional[Any]:
        if key == "file_offset":
            if self._file is None or self._file.closed:
                return None
            return self._file.tell()
        return super().get_property(key)

    def set_property(self, key: str, value: Any) -> bool:
        if key == "file_offset":
            return False
        return super().set_property(key, value)
