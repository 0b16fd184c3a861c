from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..crypto.alg_registry import KeyAlgorithm
from ..crypto.digest import KmsDigest


@dataclass(frozen=True)
class KeyMetadata:
    name: str
    algorithm: KeyAlgorithm


@runtime_checkable
class KmsServiceClient(Protocol):
    """Facade over the remote KMS calls needed to build a CSR.

    Implementations block until the remote call returns and raise whatever
    their transport raises; no retries happen above this layer.
    """

    def get_key_metadata(self, key_name: str) -> KeyMetadata: ...
    def get_public_key_pem(self, key_name: str) -> bytes: ...
    def asymmetric_sign(self, key_name: str, digest: KmsDigest) -> bytes: ...
