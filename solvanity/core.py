"""
Core key generation for Solana-style Ed25519 vanity addresses.

An address is the base-58 encoding of the 32-byte Ed25519 public key. The
exported private key is the base-58 encoding of the 64-byte keypair
(32-byte seed followed by the 32-byte public key).
"""

import os
from dataclasses import dataclass

import base58
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

SEED_SIZE = 32                 # bytes
PUBLIC_KEY_SIZE = 32           # bytes
KEYPAIR_SIZE = SEED_SIZE + PUBLIC_KEY_SIZE

# ChaCha20 stream parameters
CHACHA_KEY_SIZE = 32
CHACHA_NONCE_SIZE = 16
CHACHA_BATCH = 256             # seeds drawn from the keystream per refill
CHACHA_RESEED_AFTER = 1 << 20  # seeds per key before going back to the OS

# Serialization constants cached at module level for performance
_RAW = serialization.Encoding.Raw
_RAW_PUB = serialization.PublicFormat.Raw


class EntropyError(RuntimeError):
    """The operating system could not provide secure random bytes."""


@dataclass(frozen=True)
class Keypair:
    """One candidate keypair and its derived address."""
    secret_seed: bytes
    public_key: bytes
    address: bytes

    @property
    def address_str(self) -> str:
        return self.address.decode("ascii")

    @property
    def private_key(self) -> str:
        return encode_private_key(self.secret_seed, self.public_key)


def os_entropy(size: int) -> bytes:
    """Read `size` bytes from the OS CSPRNG, raising EntropyError on failure."""
    try:
        return os.urandom(size)
    except (OSError, NotImplementedError) as e:
        raise EntropyError(f"Secure random source unavailable: {e}") from e


def derive_public_key(seed: bytes) -> bytes:
    """Derive the raw 32-byte Ed25519 public key for a 32-byte seed."""
    prv = Ed25519PrivateKey.from_private_bytes(seed)
    return prv.public_key().public_bytes(_RAW, _RAW_PUB)


def derive_keypair(seed: bytes) -> Keypair:
    """Deterministically derive the keypair and address for a seed.

    This is the hot-path function called in the inner loop of each worker.
    """
    public_key = derive_public_key(seed)
    return Keypair(seed, public_key, base58.b58encode(public_key))


def encode_private_key(seed: bytes, public_key: bytes) -> str:
    """Base-58 encode the 64-byte seed || public key keypair."""
    if len(seed) != SEED_SIZE or len(public_key) != PUBLIC_KEY_SIZE:
        raise ValueError("Seed and public key must both be 32 bytes.")
    return base58.b58encode(seed + public_key).decode("ascii")


def decode_private_key(private_key: str) -> bytes:
    """Decode a base-58 private key back into its 64 raw bytes.

    Raises ValueError if the text is not base-58 or not 64 bytes long.
    """
    raw = base58.b58decode(private_key.strip())
    if len(raw) != KEYPAIR_SIZE:
        raise ValueError(
            f"Private key decodes to {len(raw)} bytes, expected {KEYPAIR_SIZE}."
        )
    return raw


class SystemEntropySource:
    """Draws every seed directly from the OS."""

    name = "system"

    def next_seed(self) -> bytes:
        return os_entropy(SEED_SIZE)


class ChaChaEntropySource:
    """ChaCha20 keystream keyed from OS entropy.

    One instance per worker thread. Not thread-safe.
    """

    name = "chacha"

    def __init__(self, reseed_after: int = CHACHA_RESEED_AFTER, batch: int = CHACHA_BATCH):
        self._reseed_after = reseed_after
        self._batch = batch
        self._zeros = bytes(SEED_SIZE * batch)
        self._encryptor = None
        self._produced = 0
        self._buffer = b""
        self._offset = 0
        self.reseed()

    def reseed(self) -> None:
        key = os_entropy(CHACHA_KEY_SIZE)
        nonce = os_entropy(CHACHA_NONCE_SIZE)
        self._encryptor = Cipher(algorithms.ChaCha20(key, nonce), mode=None).encryptor()
        self._produced = 0
        self._buffer = b""
        self._offset = 0

    def next_seed(self) -> bytes:
        if self._offset >= len(self._buffer):
            if self._produced >= self._reseed_after:
                self.reseed()
            self._buffer = self._encryptor.update(self._zeros)
            self._offset = 0
        seed = self._buffer[self._offset:self._offset + SEED_SIZE]
        self._offset += SEED_SIZE
        self._produced += 1
        return seed


ENTROPY_SOURCES = {
    SystemEntropySource.name: SystemEntropySource,
    ChaChaEntropySource.name: ChaChaEntropySource,
}


class KeyCandidateGenerator:
    """Produces random candidate keypairs.

    Usage:
        gen = KeyCandidateGenerator("chacha")
        keypair = gen.next_keypair()
        print(keypair.address_str, keypair.private_key)
    """

    def __init__(self, source: str = "chacha"):
        if source not in ENTROPY_SOURCES:
            raise ValueError(
                f"Unknown entropy source '{source}'. "
                f"Choose one of: {', '.join(sorted(ENTROPY_SOURCES))}"
            )
        self._source = ENTROPY_SOURCES[source]()

    @property
    def source_name(self) -> str:
        return self._source.name

    def next_keypair(self) -> Keypair:
        return derive_keypair(self._source.next_seed())
