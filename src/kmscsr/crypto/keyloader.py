from __future__ import annotations

from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm as CryptoUnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from .alg_registry import KeyAlgorithm, UnsupportedAlgorithm

PublicKey = Union[ec.EllipticCurvePublicKey, rsa.RSAPublicKey]


class PublicKeyParseError(ValueError):
    """Raised when KMS public key PEM cannot be turned into a usable key."""


def to_public_key(algorithm: KeyAlgorithm, pem_bytes: bytes) -> PublicKey:
    """Parse a SubjectPublicKeyInfo PEM according to the key's algorithm family."""
    algorithm = KeyAlgorithm.from_name(algorithm)
    if algorithm.is_ec():
        expected: type = ec.EllipticCurvePublicKey
    elif algorithm.is_rsa():
        expected = rsa.RSAPublicKey
    else:
        raise UnsupportedAlgorithm(algorithm, "Cannot construct public key for algorithm")
    if isinstance(pem_bytes, str):
        pem_bytes = pem_bytes.encode()
    try:
        key = serialization.load_pem_public_key(pem_bytes)
    except (ValueError, TypeError, CryptoUnsupportedAlgorithm) as e:
        raise PublicKeyParseError(f"Failed to create public key for {algorithm.name}: {e}") from e
    if not isinstance(key, expected):
        raise PublicKeyParseError(
            f"Failed to create public key for {algorithm.name}: got {type(key).__name__}"
        )
    return key


__all__ = ["to_public_key", "PublicKeyParseError", "PublicKey"]
