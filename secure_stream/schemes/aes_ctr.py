"""
AES-256-CTR
===========
AES-256 in Counter mode: the block cipher encrypts a running counter
and the result is XORed with the cleartext, turning AES into a stream
cipher. No padding; ciphertext is exactly as long as the cleartext.

Key size: 256 bits (32 bytes)
Nonce:    128 bits (16 bytes) — initial counter block, random per stream

Ciphertext framing: nonce(16) || ciphertext

Dependencies: cryptography >= 41.0
"""

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .base import CipherScheme


class AESCTRCipher(CipherScheme):
    """AES-256-CTR stream encryption."""

    NAME       = "aes-256-ctr"
    BLOCK_SIZE = 1
    KEY_SIZES  = (32,)
    IV_SIZE    = 16

    def __init__(self, key: bytes, iv: bytes = None):
        super().__init__(key, iv)
        self._encryptor = Cipher(algorithms.AES(self._key),
                                 modes.CTR(self._iv)).encryptor()

    def transform(self, data: bytes) -> bytes:
        return self._encryptor.update(data)

    def finish(self) -> bytes:
        return self._encryptor.finalize()
