"""
CipherEngine — incremental encryption with block bookkeeping.

feed() accepts cleartext of any length. Bytes that do not complete a
block stay in the pending accumulator until a later feed() or the
final finalize(), which pads them with the scheme's rule and flushes
the cipher. Output concatenated over any chunking of the input is the
same as feed(whole) + finalize().

The scheme header (IV / nonce) goes in front of the first output.
"""

import logging

from .errors import CipherError, InvalidKeyMaterial, InvalidState
from .schemes import CipherScheme, get_scheme

logger = logging.getLogger(__name__)


class CipherEngine:
    """Stateful wrapper around one CipherScheme instance."""

    def __init__(self, scheme: CipherScheme):
        self._scheme      = scheme
        self._block_size  = scheme.block_size
        self._pending     = bytearray()
        self._header      = scheme.header()
        self._header_sent = False
        self._finalized   = False
        self._bytes_in    = 0
        self._bytes_out   = 0

    @classmethod
    def from_reference(cls, reference) -> "CipherEngine":
        """
        Build an engine from a SecureContentReference.
        Raises InvalidKeyMaterial for an unknown scheme or bad key/IV/params.
        """
        scheme_cls = get_scheme(reference.scheme)
        try:
            scheme = scheme_cls(reference.key, iv=reference.iv, **reference.params)
        except (ValueError, TypeError) as exc:
            raise InvalidKeyMaterial(
                f"Cannot initialize {reference.scheme!r}: {exc}") from exc
        logger.debug(f"CipherEngine ready: {scheme!r}")
        return cls(scheme)

    # ── state ────────────────────────────────────────────────────────────────
    @property
    def scheme(self) -> CipherScheme:
        return self._scheme

    @property
    def block_size(self) -> int:
        return self._block_size

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def pending(self) -> int:
        """Cleartext bytes held back waiting for a complete block."""
        return len(self._pending)

    @property
    def bytes_in(self) -> int:
        return self._bytes_in

    @property
    def bytes_out(self) -> int:
        return self._bytes_out

    @property
    def reserve(self) -> int:
        """
        Upper bound on what one feed()/finalize() can emit beyond its own
        input: unsent header + pending partial block + one padding block.
        """
        header = 0 if self._header_sent else len(self._header)
        return header + 2 * self._block_size

    # ── encryption ───────────────────────────────────────────────────────────
    def feed(self, data: bytes) -> bytes:
        """Encrypt as many whole blocks as are available; keep the rest pending."""
        if self._finalized:
            raise InvalidState("CipherEngine already finalized.")
        self._pending += data
        self._bytes_in += len(data)
        whole = len(self._pending)
        if self._block_size > 1:
            whole -= whole % self._block_size
        chunk = bytes(self._pending[:whole])
        del self._pending[:whole]
        try:
            out = self._scheme.transform(chunk) if chunk else b""
        except Exception as exc:
            raise CipherError(f"{self._scheme.NAME} feed failed: {exc}") from exc
        return self._emit(out)

    def finalize(self) -> bytes:
        """Pad and encrypt the pending remainder, then flush the cipher."""
        if self._finalized:
            raise InvalidState("CipherEngine already finalized.")
        self._finalized = True
        tail = bytes(self._pending)
        self._pending.clear()
        try:
            padded = self._scheme.pad(tail)
            out = (self._scheme.transform(padded) if padded else b"") + self._scheme.finish()
        except Exception as exc:
            raise CipherError(f"{self._scheme.NAME} finalize failed: {exc}") from exc
        logger.debug(f"CipherEngine finalized: in={self._bytes_in}B "
                     f"out={self._bytes_out + len(out)}B")
        return self._emit(out)

    def encrypt(self, data: bytes) -> bytes:
        """One-shot feed(data) + finalize()."""
        return self.feed(data) + self.finalize()

    def _emit(self, out: bytes) -> bytes:
        if not self._header_sent:
            self._header_sent = True
            out = self._header + out
        self._bytes_out += len(out)
        return out

    def __repr__(self):
        return (f"CipherEngine({self._scheme.NAME}, pending={len(self._pending)}, "
                f"finalized={self._finalized})")
