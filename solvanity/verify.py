"""
Verification of exported keypairs.

Re-derives the public key from the exported seed and proves the key can sign
for the address.
"""

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from solvanity.core import SEED_SIZE, decode_private_key, derive_public_key

SIGN_MESSAGE = b"solvanity keypair verification"


def verify_keypair(address: str, private_key: str) -> dict:
    """Verify an exported private key against its address.

    Args:
        address: Base-58 address reported by the search.
        private_key: Base-58 encoded 64-byte keypair.

    Returns dict with:
        public_key_match, address_match, signature_valid, error
    """
    result = {
        "public_key_match": None,
        "address_match": None,
        "signature_valid": None,
        "error": None,
    }

    try:
        raw = decode_private_key(private_key)
        seed, embedded_pub = raw[:SEED_SIZE], raw[SEED_SIZE:]

        derived_pub = derive_public_key(seed)
        result["public_key_match"] = derived_pub == embedded_pub
        result["address_match"] = base58.b58encode(derived_pub).decode("ascii") == address

        signature = Ed25519PrivateKey.from_private_bytes(seed).sign(SIGN_MESSAGE)
        try:
            Ed25519PublicKey.from_public_bytes(base58.b58decode(address)).verify(
                signature, SIGN_MESSAGE
            )
            result["signature_valid"] = True
        except InvalidSignature:
            result["signature_valid"] = False
    except ValueError as e:
        result["error"] = str(e)

    return result


def is_valid(check: dict) -> bool:
    return bool(
        check["public_key_match"] and check["address_match"] and check["signature_valid"]
    )
