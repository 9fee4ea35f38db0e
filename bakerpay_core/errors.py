"""
Error types raised by BakerPay.

Decoding problems subclass ``ValueError`` so callers that only care about
"bad input" can catch them the usual way.  Node errors carry the signed
operations that were already produced when the failure happened.
"""

from __future__ import annotations


class BakerPayError(Exception):
    """Base class for every error raised by bakerpay_core."""


class DecodeError(BakerPayError, ValueError):
    """An encoded string or hex blob could not be decoded."""


class FormatError(DecodeError):
    """Wrong prefix tag or length for an encoded key, secret or signature."""


class HexDecodeError(FormatError):
    """Malformed hexadecimal input."""


class ChecksumError(DecodeError):
    """Base58 checksum mismatch (or characters outside the alphabet)."""


class CryptoError(BakerPayError):
    """A signing or hashing primitive failed.  Not recoverable."""


class HashWriteError(CryptoError):
    """The generic hash did not consume the input or produce the expected digest."""


class AuthenticationError(BakerPayError):
    """Wrong password for an encrypted secret key."""


class AddressMismatchError(BakerPayError):
    """An imported wallet does not reproduce the caller-supplied address or public key."""


class NodeError(BakerPayError):
    """Base class for failures talking to the remote node.

    ``operations`` holds the injectable payloads that had already been
    produced (and pre-applied) before the failure.
    """

    def __init__(self, message: str, operations: list[str] | None = None):
        super().__init__(message)
        self.operations: list[str] = list(operations or [])


class NodeRequestError(NodeError):
    """RPC call failed at the transport level or returned malformed data."""

    def __init__(
        self,
        message: str,
        operations: list[str] | None = None,
        status: int | None = None,
    ):
        super().__init__(message, operations)
        self.status = status


class ValidationError(NodeError):
    """The node's pre-apply simulation rejected a batch."""


# Names used by older callers
InvalidSecretFormat = FormatError
IncorrectPassword = AuthenticationError
