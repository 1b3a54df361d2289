"""
secure_stream — SecureInputStream test suite
=============================================
Run with:  python -m pytest tests/ -v
       or:  python tests/test_secure_stream.py
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import gc
import io
import random

import pytest
from secure_stream import (
    SecureInputStream, SecureContentReference, CipherEngine, InputStream,
    BytesInputStream, FileInputStream, UpstreamReader, WOULD_BLOCK, END_OF_STREAM,
    StreamEvent, StreamStatus, ConstructionError, InvalidKeyMaterial, InvalidState,
    UpstreamError, CipherError, register_scheme, CipherScheme,
)

KEY     = bytes(range(32))
IV      = bytes(16)
SCHEMES = ["xor-pkcs7", "aes-256-cbc", "aes-256-ctr", "chacha20"]

# "AB", "CD", end — XOR key 0x01, 4-byte PKCS7 blocks
XOR_REF      = SecureContentReference("xor-pkcs7", b"\x01", params={"block_size": 4})
XOR_EXPECTED = bytes([0x40, 0x43, 0x42, 0x45, 0x05, 0x05, 0x05, 0x05])


def reference(scheme):
    return SecureContentReference(scheme, KEY, iv=None if scheme == "xor-pkcs7" else IV)


def one_shot(ref, data):
    return CipherEngine.from_reference(ref).encrypt(data)


def drain(stream, size=100, limit=100_000):
    """Pull-driven consumer: read until AT_END."""
    out = bytearray()
    buf = bytearray(size)
    for _ in range(limit):
        n = stream.read(buf, size)
        assert n <= size
        if n < 0:
            raise AssertionError(f"read failed: {stream.stream_error}")
        out += buf[:n]
        if stream.stream_status is StreamStatus.AT_END:
            return bytes(out)
    raise AssertionError("stream never reached AT_END")


class ScriptedSource(InputStream):
    """Upstream driven by the test: push(), finish(), fail() notify synchronously."""

    def __init__(self):
        super().__init__()
        self.status      = StreamStatus.NOT_OPEN
        self.error       = None
        self.chunks      = []
        self.ended       = False
        self.close_calls = 0
        self.scheduled   = []
        self.props       = {}
        self.depth       = 0
        self.max_depth   = 0

    @property
    def stream_status(self):
        if self.status is StreamStatus.OPEN and self.ended and not self.chunks:
            return StreamStatus.AT_END
        return self.status

    @property
    def stream_error(self):
        return self.error

    def open(self):
        self.status = StreamStatus.OPEN

    def close(self):
        self.close_calls += 1
        self.status = StreamStatus.CLOSED

    def read(self, buffer, max_len):
        if self.status is StreamStatus.ERROR:
            return -1
        if not self.chunks:
            return 0
        self.depth += 1
        self.max_depth = max(self.max_depth, self.depth)
        try:
            head = self.chunks.pop(0)
            data, rest = head[:max_len], head[max_len:]
            if rest:
                self.chunks.insert(0, rest)
            buffer[:len(data)] = data
            self.after_read()
            return len(data)
        finally:
            self.depth -= 1

    def after_read(self):
        pass

    def has_bytes_available(self):
        return self.status is StreamStatus.OPEN and bool(self.chunks)

    def schedule(self, loop, mode="default"):
        self.scheduled.append((loop, mode))

    def unschedule(self, loop, mode="default"):
        self.scheduled.remove((loop, mode))

    def get_property(self, key):
        return self.props.get(key)

    def set_property(self, key, value):
        self.props[key] = value
        return True

    # ── test controls ──
    def push(self, data, notify=True):
        self.chunks.append(data)
        if notify:
            self._notify(StreamEvent.HAS_BYTES_AVAILABLE)

    def finish(self, notify=True):
        self.ended = True
        if notify:
            self._notify(StreamEvent.END_ENCOUNTERED)

    def fail(self, reason, notify=True):
        self.status = StreamStatus.ERROR
        self.error  = reason
        if notify:
            self._notify(StreamEvent.ERROR_OCCURRED)


class Recorder:
    """Downstream observer. Reads `read_size` bytes per HAS_BYTES_AVAILABLE."""

    def __init__(self, read_size=None):
        self.events    = []
        self.data      = bytearray()
        self.read_size = read_size

    def handle_event(self, stream, event):
        self.events.append(event)
        if self.read_size and event is StreamEvent.HAS_BYTES_AVAILABLE:
            buf = bytearray(self.read_size)
            n = stream.read(buf, self.read_size)
            if n > 0:
                self.data += buf[:n]


# ── construction ─────────────────────────────────────────────────────────────
def test_unknown_scheme_is_construction_error():
    src = ScriptedSource()
    with pytest.raises(ConstructionError):
        SecureInputStream(src, SecureContentReference("rot13", KEY))
    assert src.observer is None

def test_bad_key_is_invalid_key_material():
    with pytest.raises(InvalidKeyMaterial):
        SecureInputStream(ScriptedSource(), SecureContentReference("aes-256-cbc", b"short"))

def test_capacity_must_fit_final_block():
    with pytest.raises(ConstructionError):
        SecureInputStream(ScriptedSource(), reference("aes-256-cbc"), capacity=32)

def test_construction_registers_as_upstream_observer():
    src = ScriptedSource()
    s = SecureInputStream(src, XOR_REF)
    assert src.observer is s
    assert s.stream_status is StreamStatus.NOT_OPEN


# ── scenario: "AB", "CD", end ────────────────────────────────────────────────
def test_scenario_event_driven_one_byte_reads():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder(read_size=1)
    s.observer = rec
    s.open()

    src.push(b"AB")
    assert rec.events == []          # partial block, nothing to announce
    src.push(b"CD")
    assert bytes(rec.data) == XOR_EXPECTED[:4]
    assert s.stream_status is StreamStatus.OPEN
    src.finish()

    assert bytes(rec.data) == XOR_EXPECTED
    assert s.stream_status is StreamStatus.AT_END
    assert rec.events.count(StreamEvent.END_ENCOUNTERED) == 1
    assert rec.events[-1] is StreamEvent.END_ENCOUNTERED

def test_scenario_one_large_read_matches_small_reads():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    s.open()
    src.push(b"AB", notify=False)
    src.push(b"CD", notify=False)
    src.finish(notify=False)
    assert drain(s, size=100) == XOR_EXPECTED

    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    s.open()
    src.push(b"AB", notify=False)
    src.push(b"CD", notify=False)
    src.finish(notify=False)
    assert drain(s, size=1) == XOR_EXPECTED


def test_end_event_with_unread_cleartext_still_encrypts_it():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    s.open()
    src.push(b"ABCD", notify=False)
    src.finish()
    assert drain(s) == XOR_EXPECTED
    assert src.chunks == []

def test_end_event_with_unread_cleartext_event_driven():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder(read_size=3)
    s.observer = rec
    s.open()
    src.push(b"AB", notify=False)
    src.push(b"CD", notify=False)
    src.finish()
    assert bytes(rec.data) == XOR_EXPECTED
    assert s.stream_status is StreamStatus.AT_END


# ── chunking transparency ────────────────────────────────────────────────────
@pytest.mark.parametrize("scheme", SCHEMES)
def test_output_matches_one_shot(scheme):
    data = random.Random(1).randbytes(5000)
    ref  = reference(scheme)
    for chunk, read in ((1, 7), (13, 1000), (4096, 64)):
        s = SecureInputStream(BytesInputStream(data, chunk_size=chunk), ref)
        s.open()
        assert drain(s, size=read) == one_shot(ref, data)

def test_tiny_capacity_pull_driven():
    data = b"0123456789"
    s = SecureInputStream(BytesInputStream(data), XOR_REF, capacity=9)
    s.open()
    assert drain(s, size=3) == one_shot(XOR_REF, data)

def test_finalization_waits_for_buffer_room():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF, capacity=9)
    rec = Recorder()
    s.observer = rec
    s.open()
    src.push(b"ABCD")
    src.finish()
    # 4B buffered, 5B free: not enough for a padding block yet
    assert s.has_bytes_available()
    out = bytearray()
    buf = bytearray(2)
    while s.stream_status is not StreamStatus.AT_END:
        n = s.read(buf, 2)
        assert n >= 0
        out += buf[:n]
    assert bytes(out) == XOR_EXPECTED
    assert rec.events.count(StreamEvent.END_ENCOUNTERED) == 1

def test_tiny_capacity_event_driven():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF, capacity=9)
    rec = Recorder(read_size=2)
    s.observer = rec
    s.open()
    src.push(b"0123456789")
    src.finish()
    assert bytes(rec.data) == one_shot(XOR_REF, b"0123456789")
    assert s.stream_status is StreamStatus.AT_END

def test_empty_source_still_emits_padding():
    s = SecureInputStream(BytesInputStream(b""), XOR_REF)
    s.open()
    assert drain(s) == b"\x05\x05\x05\x05"


# ── read contract ────────────────────────────────────────────────────────────
def test_read_never_exceeds_max_len_or_buffer():
    s = SecureInputStream(BytesInputStream(b"x" * 64), reference("aes-256-ctr"))
    s.open()
    assert s.read(bytearray(10), 3) == 3
    assert s.read(bytearray(2), 10) == 2

def test_read_returns_zero_when_nothing_ready():
    src = ScriptedSource()
    s = SecureInputStream(src, XOR_REF)
    s.open()
    assert s.read(bytearray(8), 8) == 0
    assert not s.has_bytes_available()
    src.push(b"AB", notify=False)
    assert s.has_bytes_available()
    assert s.read(bytearray(8), 8) == 0      # held in the partial block
    assert s.stream_status is StreamStatus.OPEN

def test_read_before_open_is_invalid_state():
    s = SecureInputStream(ScriptedSource(), XOR_REF)
    with pytest.raises(InvalidState):
        s.read(bytearray(4), 4)

def test_open_twice_is_invalid_state():
    s = SecureInputStream(ScriptedSource(), XOR_REF)
    s.open()
    with pytest.raises(InvalidState):
        s.open()

def test_at_end_only_after_final_drain():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder()
    s.observer = rec
    s.open()
    src.push(b"ABCD")
    src.finish()
    assert s.stream_status is StreamStatus.OPEN
    assert StreamEvent.END_ENCOUNTERED not in rec.events
    assert s.has_bytes_available()

    buf = bytearray(8)
    assert s.read(buf, 6) == 6
    assert s.stream_status is StreamStatus.OPEN
    assert s.read(buf, 6) == 2
    assert s.stream_status is StreamStatus.AT_END
    assert rec.events.count(StreamEvent.END_ENCOUNTERED) == 1
    assert s.read(buf, 6) == 0
    assert not s.has_bytes_available()


# ── close ────────────────────────────────────────────────────────────────────
def test_read_after_close_is_error_sentinel():
    src = ScriptedSource()
    s = SecureInputStream(src, XOR_REF)
    s.open()
    src.push(b"ABCDEFGH", notify=False)
    s.close()
    assert s.stream_status is StreamStatus.CLOSED
    assert s.read(bytearray(8), 8) == -1
    assert not s.has_bytes_available()

def test_close_twice_closes_upstream_once():
    src = ScriptedSource()
    s = SecureInputStream(src, XOR_REF)
    s.open()
    s.close()
    s.close()
    assert src.close_calls == 1
    assert src.observer is None

def test_events_after_close_are_ignored():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder()
    s.observer = rec
    s.open()
    s.close()
    src.push(b"ABCD", notify=False)
    s.handle_event(src, StreamEvent.HAS_BYTES_AVAILABLE)
    s.handle_event(src, StreamEvent.END_ENCOUNTERED)
    assert rec.events == []

def test_context_manager_closes():
    src = ScriptedSource()
    with SecureInputStream(src, XOR_REF) as s:
        s.open()
    assert s.stream_status is StreamStatus.CLOSED
    assert src.close_calls == 1

def test_close_from_inside_observer():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)

    class Closer:
        def __init__(self):
            self.events = []

        def handle_event(self, stream, event):
            self.events.append(event)
            stream.close()

    closer = Closer()
    s.observer = closer
    s.open()
    src.push(b"ABCDEFGH")
    assert closer.events == [StreamEvent.HAS_BYTES_AVAILABLE]
    assert s.read(bytearray(4), 4) == -1


# ── errors ───────────────────────────────────────────────────────────────────
def test_upstream_error_event_mid_stream():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder()
    s.observer = rec
    s.open()
    src.push(b"AB")
    src.fail("disk-read-failed")

    assert s.stream_status is StreamStatus.ERROR
    assert isinstance(s.last_error, UpstreamError)
    assert s.last_error.reason == "disk-read-failed"
    assert s.read(bytearray(8), 8) == -1
    assert s.read(bytearray(8), 8) == -1
    assert rec.events.count(StreamEvent.ERROR_OCCURRED) == 1
    assert not s.has_bytes_available()

def test_upstream_error_found_by_read_is_reported_once():
    src = ScriptedSource()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder()
    s.observer = rec
    s.open()
    src.fail("disk-read-failed", notify=False)
    assert s.read(bytearray(8), 8) == -1
    src._notify(StreamEvent.ERROR_OCCURRED)
    assert rec.events == [StreamEvent.ERROR_OCCURRED]

def test_close_after_error_keeps_error_status():
    src = ScriptedSource()
    s = SecureInputStream(src, XOR_REF)
    s.open()
    src.fail("gone")
    s.close()
    assert s.stream_status is StreamStatus.ERROR
    assert src.close_calls == 1


class _FaultyScheme(CipherScheme):
    NAME = "test-faulty"

    def transform(self, data):
        raise ValueError("bad block")

register_scheme(_FaultyScheme)

def test_cipher_failure_moves_stream_to_error():
    s   = SecureInputStream(BytesInputStream(b"data"), SecureContentReference("test-faulty", b"k"))
    rec = Recorder()
    s.observer = rec
    s.open()
    assert s.read(bytearray(8), 8) == -1
    assert isinstance(s.stream_error, CipherError)
    assert rec.events == [StreamEvent.ERROR_OCCURRED]

def test_upstream_open_failure_moves_stream_to_error():
    class Unopenable(ScriptedSource):
        def open(self):
            raise OSError("device not ready")

    src = Unopenable()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder()
    s.observer = rec
    s.open()
    assert s.stream_status is StreamStatus.ERROR
    assert isinstance(s.stream_error, UpstreamError)
    assert isinstance(s.stream_error.reason, OSError)
    assert rec.events == [StreamEvent.ERROR_OCCURRED]
    assert s.read(bytearray(4), 4) == -1
    with pytest.raises(InvalidState):
        s.open()

def test_iteration_raises_stream_error():
    class BrokenFile:
        closed = False

        def read(self, n):
            raise OSError("disk-read-failed")

        def close(self):
            self.closed = True

    s = SecureInputStream(FileInputStream(BrokenFile()), XOR_REF)
    with pytest.raises(UpstreamError) as info:
        list(s)
    assert isinstance(info.value.reason, OSError)


# ── re-entrancy ──────────────────────────────────────────────────────────────
def test_upstream_event_during_cycle_does_not_nest():
    class ChattySource(ScriptedSource):
        def after_read(self):
            self._notify(StreamEvent.HAS_BYTES_AVAILABLE)

    src = ChattySource()
    s   = SecureInputStream(src, XOR_REF)
    rec = Recorder(read_size=3)
    s.observer = rec
    s.open()
    for part in (b"AB", b"CDE", b"FGHIJ", b"K"):
        src.push(part, notify=False)
    src.push(b"L")
    src.finish()
    assert src.max_depth == 1
    assert bytes(rec.data) == one_shot(XOR_REF, b"ABCDEFGHIJKL")

def test_observer_reads_do_not_recurse():
    data = b"z" * 20_000
    src  = ScriptedSource()
    s    = SecureInputStream(src, reference("aes-256-ctr"))
    rec  = Recorder(read_size=1)
    s.observer = rec
    s.open()
    src.push(data)
    src.finish()
    assert bytes(rec.data) == one_shot(reference("aes-256-ctr"), data)


# ── observer / pass-through ──────────────────────────────────────────────────
def test_observer_is_weak():
    s = SecureInputStream(ScriptedSource(), XOR_REF)
    rec = Recorder()
    s.set_observer(rec)
    assert s.get_observer() is rec
    del rec
    gc.collect()
    assert s.get_observer() is None

def test_schedule_forwards_and_registers_observer():
    src = ScriptedSource()
    s = SecureInputStream(src, XOR_REF)
    src.observer = None
    s.schedule("loop", "mode")
    assert src.scheduled == [("loop", "mode")]
    assert src.observer is s
    s.unschedule("loop", "mode")
    assert src.scheduled == []

def test_properties_forward_to_upstream():
    src = ScriptedSource()
    s = SecureInputStream(src, XOR_REF)
    assert s.set_property("content-type", "application/pdf") is True
    assert src.props["content-type"] == "application/pdf"
    assert s.get_property("content-type") == "application/pdf"
    assert s.get_property("missing") is None

def test_file_offset_property():
    s = SecureInputStream(FileInputStream(io.BytesIO(b"abcdef")), reference("chacha20"))
    s.open()
    assert s.get_property("file_offset") == 0
    assert s.set_property("file_offset", 3) is False
    drain(s)


# ── UpstreamReader ───────────────────────────────────────────────────────────
def test_upstream_reader_outcomes():
    src = ScriptedSource()
    src.open()
    reader = UpstreamReader(src)
    assert reader.pull(8) is WOULD_BLOCK
    src.push(b"hello", notify=False)
    assert reader.pull(3) == b"hel"
    assert reader.pull(8) == b"lo"
    assert reader.bytes_read == 5
    src.finish(notify=False)
    assert reader.pull(8) is END_OF_STREAM
    src.fail("nope", notify=False)
    with pytest.raises(UpstreamError):
        reader.pull(8)


# ── sources + asyncio ────────────────────────────────────────────────────────
def test_iteration_over_file(tmp_path):
    data = random.Random(3).randbytes(70_000)
    path = tmp_path / "clear.bin"
    path.write_bytes(data)
    ref = reference("aes-256-cbc")
    with SecureInputStream(FileInputStream(str(path)), ref, chunk_size=4096) as s:
        assert b"".join(s) == one_shot(ref, data)
        assert s.stream_status is StreamStatus.AT_END

def test_asyncio_event_driven_file(tmp_path):
    data = random.Random(4).randbytes(50_000)
    path = tmp_path / "clear.bin"
    path.write_bytes(data)
    ref  = reference("aes-256-ctr")
    loop = asyncio.new_event_loop()
    try:
        done = loop.create_future()

        class Consumer:
            def __init__(self):
                self.events = []
                self.data   = bytearray()

            def handle_event(self, stream, event):
                self.events.append(event)
                if event is StreamEvent.HAS_BYTES_AVAILABLE:
                    buf = bytearray(4096)
                    n = stream.read(buf, len(buf))
                    if n > 0:
                        self.data += buf[:n]
                elif event is StreamEvent.END_ENCOUNTERED and not done.done():
                    done.set_result(bytes(self.data))
                elif event is StreamEvent.ERROR_OCCURRED and not done.done():
                    done.set_exception(stream.stream_error)

        consumer = Consumer()
        s = SecureInputStream(FileInputStream(path), ref)
        s.observer = consumer
        s.schedule(loop)
        s.open()
        result = loop.run_until_complete(asyncio.wait_for(done, 5))
        assert result == one_shot(ref, data)
        assert consumer.events[0] is StreamEvent.OPEN_COMPLETED
        assert consumer.events.count(StreamEvent.OPEN_COMPLETED) == 1
        s.close()
        loop.run_until_complete(asyncio.sleep(0))
    finally:
        loop.close()


# ── run directly ─────────────────────────────────────────────────────────────
if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
