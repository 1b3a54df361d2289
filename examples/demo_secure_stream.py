"""
secure_stream — Live Demo: every scheme, pulled and pushed
===========================================================
Run:  python examples/demo_secure_stream.py

Encrypts the same cleartext through a SecureInputStream with each
scheme, once with a pull-driven consumer and once event-driven on an
asyncio loop, and checks both against a one-shot encryption.
"""

import sys, os, time, asyncio, logging, tempfile
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from secure_stream import (SecureInputStream, SecureContentReference, CipherEngine,
                           BytesInputStream, FileInputStream, StreamEvent,
                           available_schemes)

LINE = "═" * 70
MSG  = b"Encrypted on the way out, one chunk at a time. " * 2000


def header(title):
    print(f"\n{LINE}")
    print(f"  {title}")
    print(LINE)

def ok(label, value=""):
    print(f"  ✓  {label}{f': {value}' if value else ''}")


def pull(ref, data):
    with SecureInputStream(BytesInputStream(data, chunk_size=1000), ref) as stream:
        return b"".join(stream)


def push(ref, path):
    loop = asyncio.new_event_loop()
    done = loop.create_future()
    out  = bytearray()

    class Consumer:
        def handle_event(self, stream, event):
            if event is StreamEvent.HAS_BYTES_AVAILABLE:
                buf = bytearray(4096)
                n = stream.read(buf, len(buf))
                if n > 0:
                    out.extend(buf[:n])
            elif event is StreamEvent.END_ENCOUNTERED:
                done.set_result(None)
            elif event is StreamEvent.ERROR_OCCURRED:
                done.set_exception(stream.stream_error)

    consumer = Consumer()
    stream   = SecureInputStream(FileInputStream(path), ref)
    stream.observer = consumer
    stream.schedule(loop)
    try:
        stream.open()
        loop.run_until_complete(done)
    finally:
        stream.close()
        loop.close()
    return bytes(out)


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format=' %(message)s')

    print(f"\n{LINE}")
    print("  secure_stream — Streaming Encryption Demo")
    print(LINE)
    print(f"  Cleartext: {len(MSG)} bytes\n")

    with tempfile.NamedTemporaryFile(delete=False) as f:
        f.write(MSG)
        path = f.name

    try:
        for scheme in available_schemes():
            header(scheme)
            params = {"block_size": 16} if scheme == "xor-pkcs7" else None
            ref = SecureContentReference.generate(scheme, params=params)
            # fix the IV so every run of this reference produces the same bytes
            iv  = CipherEngine.from_reference(ref).scheme.iv or None
            ref = SecureContentReference(scheme, ref.key, iv=iv, params=params)
            expected = CipherEngine.from_reference(ref).encrypt(MSG)

            t0 = time.perf_counter()
            pulled = pull(ref, MSG)
            elapsed = time.perf_counter() - t0
            ok("Pull-driven", f"{len(pulled)} bytes in {elapsed*1000:.2f} ms")

            t0 = time.perf_counter()
            pushed = push(ref, path)
            elapsed = time.perf_counter() - t0
            ok("Event-driven", f"{len(pushed)} bytes in {elapsed*1000:.2f} ms")

            assert pulled == expected and pushed == expected
            ok("Matches one-shot encryption")
    finally:
        os.unlink(path)

    print(f"\n{LINE}")
    print("  All schemes: PASSED")
    print(f"{LINE}\n")
