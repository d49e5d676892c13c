"""Key exchange and encoding utilities.

Derives the X25519 shared secret between a local Ed25519 session seed and a
remote Ed25519 public key. Both sides convert their Edwards keys to Montgomery
form the same way libsodium does, so the secret matches the one the route
service derives when it verifies our signatures.
"""

import base64
import binascii
import hashlib
import logging
import string

from nacl.bindings import (
    crypto_scalarmult,
    crypto_sign_ed25519_pk_to_curve25519,
    crypto_sign_seed_keypair,
)
from nacl.exceptions import CryptoError

from routeswap.errors import InvalidKeyMaterial

logger = logging.getLogger(__name__)

KEY_SIZE = 32
ED25519_SECRET_KEY_SIZE = 64


def base64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded URL-safe base64."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(value: str) -> bytes:
    """Decode URL-safe base64, with or without padding.

    Raises:
        ValueError: If the value is not valid base64url
    """
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64url value: {e}") from e


def decode_key(value: str) -> bytes:
    """Decode key text given either as hex or as base64url.

    Raises:
        InvalidKeyMaterial: If the value is neither
    """
    value = value.strip()
    if len(value) % 2 == 0 and all(c in string.hexdigits for c in value):
        return bytes.fromhex(value)
    try:
        return base64url_decode(value)
    except ValueError as e:
        raise InvalidKeyMaterial(f"Key is neither hex nor base64url: {e}") from e


def _require_key(name: str, key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        length = len(key) if isinstance(key, (bytes, bytearray)) else type(key).__name__
        raise InvalidKeyMaterial(f"{name} must be exactly {KEY_SIZE} bytes, got {length}")


def ed25519_public_key(seed: bytes) -> bytes:
    """Get the Ed25519 public key for a 32-byte seed."""
    _require_key("seed", seed)
    public_key, _ = crypto_sign_seed_keypair(bytes(seed))
    return public_key


def ed25519_seed_to_curve25519(seed: bytes) -> bytes:
    """Convert an Ed25519 seed to a clamped Curve25519 private scalar.

    SHA-512 of the seed, first 32 bytes, with the standard clamp applied.
    """
    _require_key("seed", seed)
    scalar = bytearray(hashlib.sha512(bytes(seed)).digest()[:KEY_SIZE])
    scalar[0] &= 248
    scalar[31] &= 127
    scalar[31] |= 64
    return bytes(scalar)


def ed25519_public_to_curve25519(public_key: bytes) -> bytes:
    """Convert an Ed25519 public point to its Montgomery u-coordinate."""
    _require_key("public key", public_key)
    try:
        return crypto_sign_ed25519_pk_to_curve25519(bytes(public_key))
    except CryptoError as e:
        raise InvalidKeyMaterial(f"Public key is not a valid Ed25519 point: {e}") from e


def derive_shared_secret(local_seed: bytes, remote_public_key: bytes) -> bytes:
    """Derive the 32-byte X25519 shared secret.

    Args:
        local_seed: Our Ed25519 session seed (32 bytes)
        remote_public_key: Counterparty's Ed25519 public key (32 bytes)

    Returns:
        Shared secret used as the HMAC key for request signatures

    Raises:
        InvalidKeyMaterial: If either input is malformed
    """
    _require_key("local seed", local_seed)
    _require_key("remote public key", remote_public_key)

    private_scalar = ed25519_seed_to_curve25519(local_seed)
    remote_u = ed25519_public_to_curve25519(remote_public_key)

    try:
        return crypto_scalarmult(private_scalar, remote_u)
    except CryptoError as e:
        # libsodium rejects low-order points that produce an all-zero secret
        raise InvalidKeyMaterial(f"Key exchange failed: {e}") from e
