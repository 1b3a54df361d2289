"""
secure_stream — streaming encryption adapter
=============================================
Wrap a cleartext InputStream and read ciphertext back through the same
pull-based, event-notified interface, without holding the whole
payload in memory.

Pieces:
    SecureInputStream       the adapter (event proxy + read orchestration)
    CipherEngine            incremental encryption, partial-block bookkeeping
    ChunkBuffer             ciphertext waiting to be read
    UpstreamReader          non-blocking pulls from the source
    StatusTracker           NOT_OPEN → OPENING → OPEN → AT_END | CLOSED | ERROR
    SecureContentReference  scheme + key material for one stream

Schemes:
    xor-pkcs7     repeating-key XOR, PKCS7 blocks (educational / testing)
    aes-256-cbc   AES-256-CBC + PKCS7
    aes-256-ctr   AES-256-CTR
    chacha20      ChaCha20

License: Apache 2.0
"""

__version__ = "1.0.0"

from .errors              import (SecureStreamError, ConstructionError, InvalidKeyMaterial,
                                  InvalidState, UpstreamError, CipherError)
from .events              import StreamEvent, StreamObserver
from .status              import StreamStatus, StatusTracker
from .base                import InputStream, DEFAULT_MODE
from .schemes             import (CipherScheme, XorBlockCipher, AESCBCCipher, AESCTRCipher,
                                  ChaChaStreamCipher, register_scheme, get_scheme,
                                  available_schemes)
from .reference           import SecureContentReference
from .engine              import CipherEngine
from .buffer              import ChunkBuffer
from .upstream            import UpstreamReader, WOULD_BLOCK, END_OF_STREAM
from .sources             import BytesInputStream, FileInputStream
from .secure_input_stream import SecureInputStream

__all__ = [
    "SecureStreamError",
    "ConstructionError",
    "InvalidKeyMaterial",
    "InvalidState",
    "UpstreamError",
    "CipherError",
    "StreamEvent",
    "StreamObserver",
    "StreamStatus",
    "StatusTracker",
    "InputStream",
    "DEFAULT_MODE",
    "CipherScheme",
    "XorBlockCipher",
    "AESCBCCipher",
    "AESCTRCipher",
    "ChaChaStreamCipher",
    "register_scheme",
    "get_scheme",
    "available_schemes",
    "SecureContentReference",
    "CipherEngine",
    "ChunkBuffer",
    "UpstreamReader",
    "WOULD_BLOCK",
    "END_OF_STREAM",
    "BytesInputStream",
    "FileInputStream",
    "SecureInputStream",
]
