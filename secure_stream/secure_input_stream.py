"""
SecureInputStream
=================
Wraps an InputStream of cleartext and reads back ciphertext through the
same interface.

    consumer.read() ──► ChunkBuffer ──(empty)──► UpstreamReader.pull()
                            ▲                          │
                            └──── CipherEngine.feed ◄──┘

The stream observes its upstream source. Upstream events run one
pull-feed cycle and are re-issued to this stream's own observer:

    OPEN_COMPLETED       forwarded once the stream is OPEN
    HAS_BYTES_AVAILABLE  forwarded only if ciphertext is buffered
    END_ENCOUNTERED      remaining cleartext pulled and the cipher
                         finalized; forwarded after the last
                         ciphertext byte has been read
    ERROR_OCCURRED       stream moves to ERROR, forwarded immediately

Events to the observer go through a FIFO drained by the outermost
emitter, so an observer may call read() from handle_event() without
recursing into itself. Only one pull-feed cycle runs at a time; an
upstream event arriving during a cycle re-arms it instead.

All state is confined to the thread / event loop driving the stream.
"""

import logging
from collections import deque

from .base import DEFAULT_MODE, InputStream
from .buffer import ChunkBuffer
from .engine import CipherEngine
from .errors import ConstructionError, InvalidState, SecureStreamError, UpstreamError
from .events import StreamEvent
from .status import StatusTracker, StreamStatus
from .upstream import END_OF_STREAM, WOULD_BLOCK, UpstreamReader

logger = logging.getLogger(__name__)


class SecureInputStream(InputStream):
    """Encrypting view over a cleartext InputStream."""

    DEFAULT_CHUNK_SIZE = 16 * 1024   # max cleartext per pull

    def __init__(self, stream: InputStream, reference,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 capacity: int = ChunkBuffer.DEFAULT_CAPACITY):
        """
        stream    the upstream cleartext source; owned from here on, the
                  caller must not read it directly any more
        reference SecureContentReference giving scheme + key material

        Raises ConstructionError (InvalidKeyMaterial for a bad reference).
        """
        super().__init__()
        if stream is None:
            raise ConstructionError("An upstream stream is required.")
        if chunk_size <= 0:
            raise ConstructionError("chunk_size must be positive.")
        self._engine = CipherEngine.from_reference(reference)
        if capacity <= self._engine.reserve:
            raise ConstructionError(
                f"Buffer capacity {capacity}B cannot hold one "
                f"{self._engine.scheme.NAME} block ({self._engine.reserve}B needed).")

        self._stream     = stream
        self._reference  = reference
        self._reader     = UpstreamReader(stream)
        self._buffer     = ChunkBuffer(capacity)
        self._status     = StatusTracker()
        self._chunk_size = chunk_size

        self._upstream_ended  = False
        self._end_signalled   = False
        self._upstream_closed = False
        self._closed          = False
        self._open_announced  = False
        self._end_announced   = False
        self._bytes_delivered = 0

        self._cycling     = False
        self._rearm       = False
        self._events      = deque()
        self._dispatching = False

        stream.observer = self
        logger.debug(f"SecureInputStream created: scheme={reference.scheme}")

    # ── status ───────────────────────────────────────────────────────────────
    @property
    def stream_status(self) -> StreamStatus:
        return self._status.status

    @property
    def stream_error(self):
        return self._status.error

    status     = stream_status
    last_error = stream_error

    @property
    def reference(self):
        return self._reference

    @property
    def bytes_delivered(self) -> int:
        """Ciphertext bytes handed to the consumer so far."""
        return self._bytes_delivered

    def has_bytes_available(self) -> bool:
        if not self._status.is_readable:
            return False
        if not self._buffer.is_empty():
            return True
        if self._upstream_ended or self._end_signalled:
            return not self._engine.finalized
        return self._stream.has_bytes_available()

    # ── lifecycle ────────────────────────────────────────────────────────────
    def open(self) -> None:
        if self._status.status is not StreamStatus.NOT_OPEN:
            raise InvalidState(f"open() on a {self._status.status.value} stream.")
        self._status.transition(StreamStatus.OPENING)
        try:
            self._stream.open()
        except Exception as exc:
            self._fail(UpstreamError(exc))
            return
        self._sync_open()
        logger.info(f"SecureInputStream opening: {self._status.status.value}")

    def close(self) -> None:
        """Close this stream and the upstream source. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        if self._status.can_transition(StreamStatus.CLOSED):
            self._status.transition(StreamStatus.CLOSED)
        self._release()
        if self._stream.observer is self:
            self._stream.observer = None
        if not self._upstream_closed:
            self._upstream_closed = True
            self._stream.close()
        logger.info(f"SecureInputStream closed after {self._bytes_delivered}B")

    # ── reading ──────────────────────────────────────────────────────────────
    def read(self, buffer, max_len: int) -> int:
        """
        Copy up to max_len bytes of ciphertext into buffer.
        Returns the count, 0 if nothing is ready (or at end), -1 on error
        or after close. Never blocks.
        """
        status = self._status.status
        if status in (StreamStatus.CLOSED, StreamStatus.ERROR):
            return -1
        if status is StreamStatus.NOT_OPEN:
            raise InvalidState("read() before open().")
        if status is StreamStatus.OPENING:
            self._sync_open()
            if self._status.status is StreamStatus.ERROR:
                return -1
            if self._status.status is not StreamStatus.OPEN:
                return 0
        if self._status.status is StreamStatus.AT_END:
            return 0

        max_len = min(max_len, len(buffer))
        if max_len <= 0:
            return 0
        if self._buffer.is_empty() and not self._cycling:
            self._fill()
            if self._status.is_terminal:
                return -1

        n = self._buffer.read_into(buffer, max_len)
        if n:
            self._bytes_delivered += n
            self._after_read()
        elif self._upstream_ended and self._engine.finalized:
            self._reach_end()
        return n

    def __iter__(self):
        """
        Yield ciphertext chunks for pull-driven consumers. Stops at end of
        stream or when the upstream has nothing ready. Raises the stream
        error if the stream fails.
        """
        if self._status.status is StreamStatus.NOT_OPEN:
            self.open()
        buf = bytearray(self._chunk_size)
        while True:
            n = self.read(buf, len(buf))
            if n < 0:
                raise self._status.error or InvalidState("Stream is closed.")
            if n:
                yield bytes(buf[:n])
            elif (self._status.status is StreamStatus.AT_END
                  or not self.has_bytes_available()):
                return

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ── upstream observer ────────────────────────────────────────────────────
    def handle_event(self, stream, event: StreamEvent) -> None:
        """Upstream callback. Not for direct use by clients."""
        status = self._status.status
        if self._status.is_terminal or status is StreamStatus.AT_END:
            logger.debug(f"ignoring upstream {event.name} while {status.value}")
            return
        if status is StreamStatus.NOT_OPEN:
            logger.debug(f"ignoring upstream {event.name} before open()")
            return

        if event is StreamEvent.OPEN_COMPLETED:
            self._promote()
            if self._status.status is StreamStatus.OPEN and not self._open_announced:
                self._open_announced = True
                self._emit(StreamEvent.OPEN_COMPLETED)

        elif event is StreamEvent.HAS_BYTES_AVAILABLE:
            self._promote()
            self._fill()
            self._announce_data()

        elif event is StreamEvent.END_ENCOUNTERED:
            logger.info("upstream end encountered")
            self._promote()
            self._end_signalled = True
            self._fill()
            self._announce_data()

        elif event is StreamEvent.ERROR_OCCURRED:
            self._fail(UpstreamError(stream.stream_error))

    # ── scheduling / property pass-through ───────────────────────────────────
    def schedule(self, loop, mode: str = DEFAULT_MODE) -> None:
        self._stream.observer = self
        self._stream.schedule(loop, mode)

    def unschedule(self, loop, mode: str = DEFAULT_MODE) -> None:
        self._stream.unschedule(loop, mode)

    def get_property(self, key: str):
        return self._stream.get_property(key)

    def set_property(self, key: str, value) -> bool:
        return self._stream.set_property(key, value)

    # ── internals ────────────────────────────────────────────────────────────
    def _sync_open(self) -> None:
        upstream = self._stream.stream_status
        if upstream is StreamStatus.ERROR:
            self._fail(UpstreamError(self._stream.stream_error))
        elif upstream in (StreamStatus.OPEN, StreamStatus.AT_END):
            self._promote()

    def _promote(self) -> None:
        if self._status.status is StreamStatus.OPENING:
            self._status.transition(StreamStatus.OPEN)

    def _fill(self) -> int:
        """Run pull-feed cycles until no re-arm is pending. Returns bytes produced."""
        if self._cycling:
            self._rearm = True
            return 0
        self._cycling = True
        produced = 0
        try:
            while True:
                self._rearm = False
                produced += self._cycle()
                if not self._rearm or self._status.is_terminal:
                    break
        except SecureStreamError as exc:
            self._fail(exc)
        finally:
            self._cycling = False
        return produced

    def _cycle(self) -> int:
        # keeps pulling while cleartext only lands in the pending partial block
        while True:
            if self._upstream_ended:
                return self._finish()
            room = self._buffer.free() - self._engine.reserve
            if room <= 0:
                return 0
            result = self._reader.pull(min(self._chunk_size, room))
            if self._status.is_terminal:
                return 0
            if result is WOULD_BLOCK:
                if not self._end_signalled:
                    return 0
                # upstream announced its end and has nothing left to hand over
                result = END_OF_STREAM
            if result is END_OF_STREAM:
                logger.info("upstream exhausted")
                self._upstream_ended = True
                continue
            out = self._engine.feed(result)
            self._buffer.append(out)
            logger.debug(f"encrypted {len(result)}B -> {len(out)}B "
                         f"(pending {self._engine.pending}B)")
            if out:
                return len(out)

    def _finish(self) -> int:
        if self._engine.finalized:
            return 0
        if self._buffer.free() < self._engine.reserve:
            logger.debug("finalization deferred until the buffer drains")
            return 0
        out = self._engine.finalize()
        self._buffer.append(out)
        return len(out)

    def _after_read(self) -> None:
        if self._status.is_terminal:
            return
        if self._cycling:
            if self._buffer.is_empty() and self._upstream_ended and self._engine.finalized:
                self._reach_end()
            return
        if self._buffer.is_empty() or (self._upstream_ended and not self._engine.finalized):
            self._fill()
            if self._status.is_terminal:
                return
        self._announce_data()

    def _announce_data(self) -> None:
        if self._status.is_terminal:
            return
        if not self._buffer.is_empty():
            self._emit(StreamEvent.HAS_BYTES_AVAILABLE)
        elif self._upstream_ended and self._engine.finalized:
            self._reach_end()

    def _reach_end(self) -> None:
        self._promote()
        if self._status.status is StreamStatus.OPEN:
            self._status.transition(StreamStatus.AT_END)
            logger.info(f"SecureInputStream at end: {self._bytes_delivered}B delivered")
        if not self._end_announced:
            self._end_announced = True
            self._emit(StreamEvent.END_ENCOUNTERED)

    def _fail(self, error) -> None:
        if not self._status.can_transition(StreamStatus.ERROR):
            return
        logger.warning(f"SecureInputStream failed: {error}")
        self._status.transition(StreamStatus.ERROR, error)
        self._release()
        self._emit(StreamEvent.ERROR_OCCURRED)

    def _release(self) -> None:
        self._buffer.clear()
        self._events.clear()
        self._engine = None

    def _deliverable(self, event: StreamEvent) -> bool:
        status = self._status.status
        if status is StreamStatus.CLOSED:
            return False
        if status is StreamStatus.ERROR:
            return event is StreamEvent.ERROR_OCCURRED
        if event is StreamEvent.HAS_BYTES_AVAILABLE:
            return not self._buffer.is_empty()
        return True

    def _emit(self, event: StreamEvent) -> None:
        if self.observer is None:
            return
        if event is StreamEvent.HAS_BYTES_AVAILABLE and event in self._events:
            return
        self._events.append(event)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._events:
                queued = self._events.popleft()
                if not self._deliverable(queued):
                    continue
                observer = self.observer
                if observer is None:
                    self._events.clear()
                    break
                observer.handle_event(self, queued)
        finally:
            self._dispatching = False

    def __repr__(self):
        return (f"SecureInputStream({self._reference.scheme}, "
                f"{self._status.status.value}, buffered={self._buffer.available()}B)")
