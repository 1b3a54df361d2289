"""
CipherScheme — the per-algorithm half of the cipher engine.

A scheme only ever sees whole blocks in transform(); the engine owns the
partial-block accumulator. Block schemes pad the tail with PKCS7, stream
schemes (BLOCK_SIZE = 1) emit byte-for-byte and need no padding.

Schemes with an IV/nonce put it in front of the ciphertext: header()
returns it and the engine emits it ahead of the first output.

Dependencies: cryptography >= 41.0
"""

import os
from abc import ABC, abstractmethod

from cryptography.hazmat.primitives import padding


class CipherScheme(ABC):
    """Scheme identifier + key material + running cipher state."""

    NAME       = None
    BLOCK_SIZE = 1    # bytes; 1 means stream cipher
    KEY_SIZES  = ()   # accepted key lengths; empty = any non-empty key
    IV_SIZE    = 0

    def __init__(self, key: bytes, iv: bytes = None):
        if not isinstance(key, (bytes, bytearray)) or not key:
            raise ValueError(f"{self.NAME} key must be non-empty bytes.")
        if self.KEY_SIZES and len(key) not in self.KEY_SIZES:
            sizes = "/".join(str(s) for s in self.KEY_SIZES)
            raise ValueError(f"{self.NAME} key must be {sizes} bytes.")
        if self.IV_SIZE:
            if iv is None:
                iv = os.urandom(self.IV_SIZE)
            if len(iv) != self.IV_SIZE:
                raise ValueError(f"{self.NAME} IV must be {self.IV_SIZE} bytes.")
        elif iv:
            raise ValueError(f"{self.NAME} does not take an IV.")
        self._key = bytes(key)
        self._iv  = bytes(iv) if iv else b""

    @property
    def block_size(self) -> int:
        return self.BLOCK_SIZE

    @property
    def iv(self) -> bytes:
        return self._iv

    @classmethod
    def generate_key(cls) -> bytes:
        return os.urandom(max(cls.KEY_SIZES) if cls.KEY_SIZES else 32)

    def header(self) -> bytes:
        return self._iv

    @abstractmethod
    def transform(self, data: bytes) -> bytes:
        """Encrypt whole blocks (any length for stream schemes)."""

    def pad(self, remainder: bytes) -> bytes:
        """Apply the padding rule to the final partial block."""
        if self.block_size == 1:
            return remainder
        padder = padding.PKCS7(self.block_size * 8).padder()
        return padder.update(remainder) + padder.finalize()

    def finish(self) -> bytes:
        """Flush the underlying cipher context."""
        return b""

    def __repr__(self):
        return f"{type(self).__name__}({self.NAME}, block={self.block_size})"
