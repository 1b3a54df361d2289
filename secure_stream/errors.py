"""
Error taxonomy
==============
Every failure the adapter reports derives from SecureStreamError.

    ConstructionError   bad scheme / key material, no stream is produced
      InvalidKeyMaterial
    InvalidState        call made in the wrong lifecycle phase
    UpstreamError       the cleartext source failed
    CipherError         the scheme failed during feed / finalize
"""


class SecureStreamError(Exception):
    """Base class for secure_stream failures."""


class ConstructionError(SecureStreamError, ValueError):
    """The stream or cipher engine could not be built."""


class InvalidKeyMaterial(ConstructionError):
    """Scheme identifier, key, IV or params are unsupported or malformed."""


class InvalidState(SecureStreamError, RuntimeError):
    """Operation called in the wrong lifecycle phase."""


class UpstreamError(SecureStreamError):
    """
    Wraps the error reported by the upstream cleartext source.
    The original error (exception or plain reason) is kept on `.reason`.
    """

    def __init__(self, reason=None, message: str = None):
        self.reason = reason
        if message is None:
            message = f"upstream stream failed: {reason}"
        super().__init__(message)


class CipherError(SecureStreamError):
    """Scheme-level failure while encrypting. Fatal to the stream."""
