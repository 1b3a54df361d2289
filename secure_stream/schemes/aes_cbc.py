"""
AES-256-CBC + PKCS7
===================
AES-256 in Cipher Block Chaining mode. Each 16-byte block is XORed
with the previous ciphertext block before encryption; the first block
uses a random IV.

Key size: 256 bits (32 bytes)
IV:       128 bits (16 bytes) — randomly generated per stream
Padding:  PKCS7 to the 16-byte block size

Ciphertext framing: iv(16) || ciphertext

CBC is not authenticated. Pair it with a MAC over the whole ciphertext
if tampering is a concern.

Dependencies: cryptography >= 41.0
"""

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .base import CipherScheme


class AESCBCCipher(CipherScheme):
    """AES-256-CBC block encryption."""

    NAME       = "aes-256-cbc"
    BLOCK_SIZE = 16
    KEY_SIZES  = (32,)   # 256-bit key
    IV_SIZE    = 16

    def __init__(self, key: bytes, iv: bytes = None):
        super().__init__(key, iv)
        self._encryptor = Cipher(algorithms.AES(self._key),
                                 modes.CBC(self._iv)).encryptor()

    def transform(self, data: bytes) -> bytes:
        return self._encryptor.update(data)

    def finish(self) -> bytes:
        return self._encryptor.finalize()
