"""
Cipher schemes, looked up by identifier.

    xor-pkcs7     repeating-key XOR, PKCS7 blocks (educational / testing)
    aes-256-cbc   AES-256-CBC + PKCS7, IV header
    aes-256-ctr   AES-256-CTR stream, nonce header
    chacha20      ChaCha20 stream, nonce header
"""

from ..errors import InvalidKeyMaterial
from .base      import CipherScheme
from .xor_block import XorBlockCipher
from .aes_cbc   import AESCBCCipher
from .aes_ctr   import AESCTRCipher
from .chacha20  import ChaChaStreamCipher

_REGISTRY = {}


def register_scheme(cls):
    """Register a CipherScheme subclass under its NAME. Usable as a decorator."""
    if not cls.NAME:
        raise ValueError(f"{cls.__name__} has no NAME.")
    _REGISTRY[cls.NAME] = cls
    return cls


def get_scheme(name: str):
    try:
        return _REGISTRY[name]
    except (KeyError, TypeError):
        raise InvalidKeyMaterial(f"Unsupported cipher scheme: {name!r}") from None


def available_schemes() -> list:
    return sorted(_REGISTRY)


for _cls in (XorBlockCipher, AESCBCCipher, AESCTRCipher, ChaChaStreamCipher):
    register_scheme(_cls)

__all__ = [
    "CipherScheme",
    "XorBlockCipher",
    "AESCBCCipher",
    "AESCTRCipher",
    "ChaChaStreamCipher",
    "register_scheme",
    "get_scheme",
    "available_schemes",
]
