"""
Operation signing.

The bytes that get signed are ``watermark || forged_bytes`` where the
watermark ``0x03`` marks a generic operation.  What is actually signed is the
32-byte BLAKE2b hash of that, and the node expects the raw 64-byte signature
appended (as hex) to the forged bytes when the operation is injected.
"""

from __future__ import annotations

import logging

import nacl.exceptions
import nacl.signing

from bakerpay_core.encoding import (
    OPERATION_HASH_SIZE,
    PREFIX_EDPK,
    PREFIX_EDSIG,
    b58check_decode,
    b58check_encode,
    generic_hash,
    hex_to_bytes,
)
from bakerpay_core.errors import CryptoError, FormatError
from bakerpay_core.wallet import Wallet

logger = logging.getLogger("bakerpay.signer")

GENERIC_OPERATION_WATERMARK = b"\x03"
SIGNATURE_SIZE = 64


def operation_digest(forged_hex: str) -> bytes:
    """Hash of the watermarked forged operation, the value that gets signed."""
    op_bytes = hex_to_bytes(forged_hex)
    return generic_hash(GENERIC_OPERATION_WATERMARK + op_bytes, OPERATION_HASH_SIZE)


def sign_operation(forged_hex: str, wallet: Wallet) -> str:
    """Sign forged operation bytes with *wallet* and return an ``edsig`` string."""
    digest = operation_digest(forged_hex)
    try:
        signed = wallet.keypair.signing_key().sign(digest)
    except nacl.exceptions.CryptoError as exc:
        raise CryptoError(f"Unable to sign operation bytes: {exc}") from exc
    return b58check_encode(signed.signature, PREFIX_EDSIG)


def signature_to_hex(edsig: str) -> str:
    """Strip the ``edsig`` tag and return the raw signature as hex."""
    raw = b58check_decode(edsig, PREFIX_EDSIG)
    if len(raw) != SIGNATURE_SIZE:
        raise FormatError(f"Signature must be {SIGNATURE_SIZE} bytes, got {len(raw)}")
    return raw.hex()


def signed_payload(forged_hex: str, edsig: str) -> str:
    """The injectable operation: forged bytes followed by the raw signature."""
    return forged_hex + signature_to_hex(edsig)


def verify_operation(forged_hex: str, edsig: str, public_key: str) -> bool:
    """Check an ``edsig`` over forged bytes against an ``edpk`` public key."""
    verify_key = nacl.signing.VerifyKey(b58check_decode(public_key, PREFIX_EDPK))
    try:
        verify_key.verify(operation_digest(forged_hex), bytes.fromhex(signature_to_hex(edsig)))
    except nacl.exceptions.BadSignatureError:
        logger.debug("Signature verification failed")
        return False
    return True
