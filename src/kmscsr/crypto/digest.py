"""Digest selection for KMS asymmetric signing.

The KMS signs a precomputed digest. The request carries the digest in a
field named after the hash (``sha256``/``sha384``/``sha512``), so each
DigestKind knows both how to hash and how to wrap the result.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from cryptography.hazmat.primitives import hashes

from .alg_registry import KeyAlgorithm


@dataclass(frozen=True)
class KmsDigest:
    """Wrapped digest: exactly one of the hash fields is populated."""

    sha256: Optional[bytes] = None
    sha384: Optional[bytes] = None
    sha512: Optional[bytes] = None

    def __post_init__(self):
        populated = [f for f in ("sha256", "sha384", "sha512") if getattr(self, f) is not None]
        if len(populated) != 1:
            raise ValueError(f"exactly one digest field must be set, got {populated or 'none'}")

    @property
    def kind(self) -> str:
        if self.sha256 is not None:
            return "sha256"
        if self.sha384 is not None:
            return "sha384"
        return "sha512"

    @property
    def value(self) -> bytes:
        return getattr(self, self.kind)

    def to_request(self) -> Dict[str, bytes]:
        return {self.kind: self.value}


@dataclass(frozen=True)
class DigestKind:
    name: str
    digest_size: int
    hash_fn: Callable[[bytes], Any]
    hash_algorithm: Callable[[], hashes.HashAlgorithm]
    wrap_fn: Callable[[bytes], KmsDigest]

    def digest(self, data: bytes) -> bytes:
        return self.hash_fn(data).digest()

    def wrap(self, digest_bytes: bytes) -> KmsDigest:
        if len(digest_bytes) != self.digest_size:
            raise ValueError(
                f"{self.name} digest must be {self.digest_size} bytes, got {len(digest_bytes)}"
            )
        return self.wrap_fn(bytes(digest_bytes))

    def digest_and_wrap(self, data: bytes) -> KmsDigest:
        return self.wrap(self.digest(data))


SHA256 = DigestKind("sha256", 32, hashlib.sha256, hashes.SHA256, lambda b: KmsDigest(sha256=b))
SHA384 = DigestKind("sha384", 48, hashlib.sha384, hashes.SHA384, lambda b: KmsDigest(sha384=b))
SHA512 = DigestKind("sha512", 64, hashlib.sha512, hashes.SHA512, lambda b: KmsDigest(sha512=b))


def digest_for(algorithm: Union[KeyAlgorithm, str]) -> DigestKind:
    # Suffix rule, not a table: names that match neither suffix get SHA-512.
    name = algorithm.name if isinstance(algorithm, KeyAlgorithm) else str(algorithm)
    if name.endswith("256") or name.endswith("256K"):
        return SHA256
    if name.endswith("384"):
        return SHA384
    return SHA512


__all__ = ["KmsDigest", "DigestKind", "SHA256", "SHA384", "SHA512", "digest_for"]
