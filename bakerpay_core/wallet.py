"""
Wallet management for BakerPay.

A wallet wraps an ed25519 key-pair and provides:
  - Derivation from a BIP-39 mnemonic (PBKDF2-HMAC-SHA512 seed)
  - Import from an ``edsk`` secret key or 32-byte ``edsk`` seed
  - Import from an ``edesk`` password-encrypted seed
  - ``tz1`` address derivation (BLAKE2b-160 of the public key)

Raw key bytes live in :class:`SecretKeyMaterial`, which zeroes itself when
wiped or collected and never prints its contents.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import TYPE_CHECKING

import nacl.exceptions
import nacl.secret
import nacl.signing

from bakerpay_core.encoding import (
    PREFIX_EDESK,
    PREFIX_EDPK,
    PREFIX_EDSK,
    PREFIX_EDSK_SEED,
    PREFIX_TZ1,
    PUBLIC_KEY_HASH_SIZE,
    b58check_decode,
    b58check_encode,
    generic_hash,
)
from bakerpay_core.errors import AddressMismatchError, AuthenticationError, CryptoError, FormatError

if TYPE_CHECKING:
    from bakerpay_core.config import WalletConfig

SECRET_KEY_LENGTH = 98        # edsk + 64-byte secret key
SEED_LENGTH = 54              # edsk + 32-byte seed
ENCRYPTED_KEY_LENGTH = 88     # edesk + salt + boxed seed

MNEMONIC_ITERATIONS = 2048
ENCRYPTION_ITERATIONS = 32768
SALT_SIZE = 8


class SecretKeyMaterial:
    """Owned buffer of secret bytes, zeroed on :meth:`wipe` and on collection."""

    __slots__ = ("_buf",)

    def __init__(self, data: bytes | bytearray):
        self._buf = bytearray(data)

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretKeyMaterial):
            return NotImplemented
        return hmac.compare_digest(self._buf, other._buf)

    __hash__ = None  # type: ignore[assignment]

    def __getitem__(self, item: slice) -> bytes:
        return bytes(self._buf[item])

    @property
    def wiped(self) -> bool:
        return not any(self._buf)

    def wipe(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0

    def __del__(self) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"SecretKeyMaterial(<{len(self._buf)} bytes>)"


class KeyPair:
    """ed25519 key-pair: 64-byte secret (seed || public) and 32-byte public key."""

    def __init__(self, secret: SecretKeyMaterial, public: bytes):
        self.secret = secret
        self.public = public

    @classmethod
    def from_seed(cls, seed: bytes) -> KeyPair:
        if len(seed) != 32:
            raise FormatError(f"Signing seed must be 32 bytes, got {len(seed)}")
        try:
            signing_key = nacl.signing.SigningKey(bytes(seed))
        except nacl.exceptions.CryptoError as exc:
            raise CryptoError(f"Unable to derive key-pair: {exc}") from exc
        public = bytes(signing_key.verify_key)
        return cls(SecretKeyMaterial(bytes(seed) + public), public)

    @property
    def seed(self) -> bytes:
        return self.secret[:32]

    def signing_key(self) -> nacl.signing.SigningKey:
        """Build a short-lived PyNaCl signing key; callers must not keep it."""
        return nacl.signing.SigningKey(self.seed)

    def wipe(self) -> None:
        self.secret.wipe()

    def __repr__(self) -> str:
        return f"KeyPair(public={self.public.hex()[:16]}...)"


def public_key_hash(public: bytes) -> str:
    """Derive the ``tz1`` address of a raw ed25519 public key."""
    if len(public) != 32:
        raise CryptoError(f"Public key must be 32 bytes, got {len(public)}")
    return b58check_encode(generic_hash(public, PUBLIC_KEY_HASH_SIZE), PREFIX_TZ1)


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """Convert a mnemonic phrase to a 64-byte seed (BIP-39)."""
    salt = ("mnemonic" + passphrase).encode("utf-8")
    return hashlib.pbkdf2_hmac(
        "sha512", mnemonic.encode("utf-8"), salt, MNEMONIC_ITERATIONS, dklen=64,
    )


class Wallet:
    """A delegate wallet able to sign operations."""

    def __init__(
        self,
        address: str,
        public_key: str,
        secret_key: str,
        keypair: KeyPair,
        mnemonic: str | None = None,
        seed: SecretKeyMaterial | None = None,
    ):
        self.address = address
        self.public_key = public_key
        self.secret_key = secret_key
        self.keypair = keypair
        self.mnemonic = mnemonic
        self.seed = seed

    # ---- factory methods ----

    @classmethod
    def _from_keypair(cls, keypair: KeyPair, **extra) -> Wallet:
        return cls(
            address=public_key_hash(keypair.public),
            public_key=b58check_encode(keypair.public, PREFIX_EDPK),
            secret_key=b58check_encode(bytes(keypair.secret), PREFIX_EDSK),
            keypair=keypair,
            **extra,
        )

    @classmethod
    def create(cls, mnemonic: str, passphrase: str = "") -> Wallet:
        """
        Derive a wallet from a mnemonic and optional passphrase.

        The 64-byte BIP-39 seed is kept on the wallet; its first 32 bytes
        are the ed25519 signing seed.
        """
        seed = SecretKeyMaterial(mnemonic_to_seed(mnemonic, passphrase))
        keypair = KeyPair.from_seed(seed[:32])
        return cls._from_keypair(keypair, mnemonic=mnemonic, seed=seed)

    @classmethod
    def import_keys(cls, address: str, public_key: str, secret_key: str) -> Wallet:
        """
        Import a wallet from its encoded keys.

        *secret_key* is either a full ``edsk`` secret key (98 chars) or an
        ``edsk`` encoded 32-byte seed (54 chars).  The reconstructed address
        and public key must match the ones supplied, otherwise
        AddressMismatchError is raised.
        """
        secret_key = secret_key.strip()
        if not secret_key.startswith("edsk") or len(secret_key) not in (SECRET_KEY_LENGTH, SEED_LENGTH):
            raise FormatError("The provided secret does not conform to known patterns")

        if len(secret_key) == SECRET_KEY_LENGTH:
            decoded = SecretKeyMaterial(b58check_decode(secret_key, PREFIX_EDSK))
            if len(decoded) != 64:
                raise FormatError(f"Secret key must decode to 64 bytes, got {len(decoded)}")
            keypair = KeyPair.from_seed(decoded[:32])
            if keypair.public != decoded[32:]:
                keypair.wipe()
                raise FormatError("Secret key's public half does not match its seed")
            decoded.wipe()
        else:
            seed = SecretKeyMaterial(b58check_decode(secret_key, PREFIX_EDSK_SEED))
            keypair = KeyPair.from_seed(bytes(seed))
            seed.wipe()

        wallet = cls._from_keypair(keypair)
        if wallet.address != address:
            wallet.wipe()
            raise AddressMismatchError(
                f"Reconstructed address '{wallet.address}' and provided address '{address}' do not match"
            )
        if wallet.public_key != public_key:
            wallet.wipe()
            raise AddressMismatchError(
                f"Reconstructed public key '{wallet.public_key}' and provided public key '{public_key}' do not match"
            )
        return wallet

    @classmethod
    def import_encrypted(cls, password: str, encrypted_secret_key: str) -> Wallet:
        """
        Import a wallet from an ``edesk`` encrypted seed.

        Layout after decoding: 8-byte salt || secretbox(seed).  The box key
        is PBKDF2-HMAC-SHA512(password, salt, 32768).  The nonce is all
        zeroes: each salt-derived key only ever seals this one seed, which
        is the sole reason a fixed nonce is acceptable here.
        """
        encrypted_secret_key = encrypted_secret_key.strip()
        if encrypted_secret_key.startswith("encrypted:"):
            encrypted_secret_key = encrypted_secret_key[len("encrypted:"):]
        if not encrypted_secret_key.startswith("edesk") or len(encrypted_secret_key) != ENCRYPTED_KEY_LENGTH:
            raise FormatError("Encrypted secret key does not conform to known patterns")

        payload = b58check_decode(encrypted_secret_key, PREFIX_EDESK)
        salt, boxed = payload[:SALT_SIZE], payload[SALT_SIZE:]

        key = SecretKeyMaterial(hashlib.pbkdf2_hmac(
            "sha512", password.encode("utf-8"), salt, ENCRYPTION_ITERATIONS, dklen=32,
        ))
        try:
            box = nacl.secret.SecretBox(bytes(key))
            seed = SecretKeyMaterial(box.decrypt(boxed, bytes(nacl.secret.SecretBox.NONCE_SIZE)))
        except nacl.exceptions.CryptoError as exc:
            raise AuthenticationError("Incorrect password for encrypted key") from exc
        finally:
            key.wipe()

        keypair = KeyPair.from_seed(bytes(seed))
        seed.wipe()
        return cls._from_keypair(keypair)

    # ---- lifecycle ----

    def wipe(self) -> None:
        """Zero all raw key material held by this wallet."""
        self.keypair.wipe()
        if self.seed is not None:
            self.seed.wipe()

    def __repr__(self) -> str:
        return f"Wallet({self.address})"


def load_wallet(cfg: WalletConfig) -> Wallet:
    """Build the payout wallet from the ``[wallet]`` configuration section."""
    if cfg.encrypted_secret_key:
        wallet = Wallet.import_encrypted(cfg.password, cfg.encrypted_secret_key)
        if cfg.address and wallet.address != cfg.address:
            wallet.wipe()
            raise AddressMismatchError(
                f"Decrypted wallet address '{wallet.address}' and configured address '{cfg.address}' do not match"
            )
        return wallet
    if not cfg.secret_key:
        raise FormatError("No wallet secret configured: set secret_key or encrypted_secret_key")
    return Wallet.import_keys(cfg.address, cfg.public_key, cfg.secret_key)
