"""
XOR-PKCS7 — repeating-key XOR over padded blocks
=================================================
Each cleartext byte is XORed with the key byte at the same stream
position (the key repeats). Input is grouped into blocks of
`block_size` bytes and the last block is PKCS7-padded, so the
ciphertext length is always a multiple of the block size.

Not secure. It exists as the educational baseline and as a
deterministic scheme whose output can be checked by hand:

    key=0x01, block_size=4, "ABCD"  ->  40 43 42 45 | 05 05 05 05
"""

from .base import CipherScheme


class XorBlockCipher(CipherScheme):
    """Repeating-key XOR with PKCS7 block padding."""

    NAME           = "xor-pkcs7"
    BLOCK_SIZE     = 16
    MAX_BLOCK_SIZE = 255

    def __init__(self, key: bytes, iv: bytes = None, block_size: int = BLOCK_SIZE):
        super().__init__(key, iv)
        if not isinstance(block_size, int) or not 2 <= block_size <= self.MAX_BLOCK_SIZE:
            raise ValueError(
                f"XOR block size must be between 2 and {self.MAX_BLOCK_SIZE}.")
        self._block_size = block_size
        self._position   = 0

    @property
    def block_size(self) -> int:
        return self._block_size

    def transform(self, data: bytes) -> bytes:
        key = self._key
        klen = len(key)
        start = self._position
        out = bytes(b ^ key[(start + i) % klen] for i, b in enumerate(data))
        self._position += len(data)
        return out
