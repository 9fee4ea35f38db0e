"""
Base58Check encoding with Tezos prefix tags, hex helpers and generic hashing.

Every encoded string carries a fixed multi-byte tag in front of its payload,
which is what makes ``tz1...`` recognisable as an address and ``edsk...`` as
a secret key without any outside metadata.

Usage:
    from bakerpay_core.encoding import PREFIX_EDPK, b58check_encode
    pk = b58check_encode(raw_public_key, PREFIX_EDPK)
"""

from __future__ import annotations

import base58
import nacl.encoding
import nacl.exceptions
import nacl.hash

from bakerpay_core.errors import ChecksumError, CryptoError, FormatError, HashWriteError, HexDecodeError

# ── Prefix tags ──────────────────────────────────────────────────────
PREFIX_TZ1 = bytes([6, 161, 159])              # ed25519 public key hash
PREFIX_EDPK = bytes([13, 15, 37, 217])         # ed25519 public key
PREFIX_EDSK = bytes([43, 246, 78, 7])          # ed25519 secret key (64 bytes)
PREFIX_EDSK_SEED = bytes([13, 15, 58, 7])      # ed25519 seed (32 bytes)
PREFIX_EDESK = bytes([7, 90, 60, 179, 41])     # encrypted ed25519 seed
PREFIX_EDSIG = bytes([9, 245, 205, 134, 18])   # ed25519 signature
PREFIX_BLOCK = bytes([1, 52])                  # block hash

PUBLIC_KEY_HASH_SIZE = 20
OPERATION_HASH_SIZE = 32


def b58check_encode(payload: bytes, prefix: bytes) -> str:
    """Prepend *prefix* to *payload* and return the Base58Check string."""
    return base58.b58encode_check(prefix + bytes(payload)).decode("ascii")


def b58check_decode(text: str, prefix: bytes) -> bytes:
    """
    Decode a Base58Check string and strip exactly *prefix*.

    Raises ChecksumError on a bad checksum or alphabet, and FormatError when
    the decoded bytes do not start with the expected tag.
    """
    try:
        raw = base58.b58decode_check(text)
    except ValueError as exc:
        raise ChecksumError(f"Base58Check decode failed for {text[:8]}...: {exc}") from exc
    if not raw.startswith(prefix) or len(raw) == len(prefix):
        raise FormatError(f"Decoded value does not carry the expected {len(prefix)}-byte prefix")
    return raw[len(prefix):]


def hex_to_bytes(text: str) -> bytes:
    """Decode a hex string, raising HexDecodeError on malformed input."""
    try:
        return bytes.fromhex(text)
    except (ValueError, TypeError) as exc:
        raise HexDecodeError(f"Invalid hex input: {exc}") from exc


def generic_hash(data: bytes, size: int) -> bytes:
    """Unkeyed BLAKE2b digest of *size* bytes (libsodium's generichash)."""
    try:
        digest = nacl.hash.blake2b(bytes(data), digest_size=size, encoder=nacl.encoding.RawEncoder)
    except nacl.exceptions.CryptoError as exc:
        raise CryptoError(f"generic hash failed: {exc}") from exc
    if len(digest) != size:
        raise HashWriteError(f"generic hash produced {len(digest)} bytes, expected {size}")
    return digest
