"""
ChaCha20 (stream)
=================
Daniel J. Bernstein's ChaCha20 stream cipher, used here without the
Poly1305 tag so the ciphertext can be produced incrementally.

Key:   256-bit (32 bytes)
Nonce: 128-bit (16 bytes) — 64-bit counter + 64-bit nonce, as the
       cryptography library expects; randomly generated per stream

Ciphertext framing: nonce(16) || ciphertext

Dependencies: cryptography >= 41.0
"""

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from .base import CipherScheme


class ChaChaStreamCipher(CipherScheme):
    """ChaCha20 stream encryption."""

    NAME       = "chacha20"
    BLOCK_SIZE = 1
    KEY_SIZES  = (32,)
    IV_SIZE    = 16

    def __init__(self, key: bytes, iv: bytes = None):
        super().__init__(key, iv)
        self._encryptor = Cipher(algorithms.ChaCha20(self._key, self._iv),
                                 mode=None).encryptor()

    def transform(self, data: bytes) -> bytes:
        return self._encryptor.update(data)

    def finish(self) -> bytes:
        return self._encryptor.finalize()
