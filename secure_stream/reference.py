"""
SecureContentReference — what to encrypt with.

Carries the scheme identifier, key material, optional IV/nonce and
scheme parameters for one piece of content. The stream treats it as
opaque configuration: it only asks the engine to build an initialized
cipher from it.
"""

from typing import Optional

from .schemes import get_scheme


class SecureContentReference:
    """Scheme + key material (+ IV, params, content id) for one stream."""

    def __init__(self, scheme: str, key: bytes, iv: bytes = None,
                 params: dict = None, content_id: Optional[str] = None):
        self._scheme     = scheme
        self._key        = bytes(key) if isinstance(key, (bytes, bytearray)) else key
        self._iv         = bytes(iv) if isinstance(iv, (bytes, bytearray)) else iv
        self._params     = dict(params or {})
        self._content_id = content_id

    @classmethod
    def generate(cls, scheme: str, params: dict = None,
                 content_id: Optional[str] = None) -> "SecureContentReference":
        """Fresh random key of the scheme's preferred size. IV is left to the scheme."""
        key = get_scheme(scheme).generate_key()
        return cls(scheme, key, params=params, content_id=content_id)

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def key(self) -> bytes:
        return self._key

    @property
    def iv(self) -> Optional[bytes]:
        return self._iv

    @property
    def params(self) -> dict:
        return dict(self._params)

    @property
    def content_id(self) -> Optional[str]:
        return self._content_id

    def __repr__(self):
        # never print key material
        return (f"SecureContentReference(scheme={self._scheme!r}, "
                f"content_id={self._content_id!r})")
