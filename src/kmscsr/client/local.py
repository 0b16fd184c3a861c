from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from ..crypto.alg_registry import KeyAlgorithm, UnsupportedAlgorithm
from ..crypto.digest import KmsDigest, digest_for
from .base import KeyMetadata

PrivateKey = Union[ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey]


class UnknownKey(KeyError):
    """Raised when a key version name is not held by the local client."""


@dataclass
class _LocalKey:
    algorithm: KeyAlgorithm
    private_key: PrivateKey


class LocalKmsServiceClient:
    """In-memory KMS (DEV-ONLY). Private keys live in process memory.

    Signs prehashed digests the same way the remote service does, so CSRs it
    produces verify against the exported public key.
    """

    def __init__(self):
        self._keys: Dict[str, _LocalKey] = {}
        self._lock = threading.Lock()

    def add_key(self, key_name: str, algorithm: KeyAlgorithm, private_key: PrivateKey) -> None:
        algorithm = KeyAlgorithm.from_name(algorithm)
        if algorithm.is_ec() and not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise ValueError(f"{algorithm.name} requires an EC private key")
        if algorithm.is_rsa() and not isinstance(private_key, rsa.RSAPrivateKey):
            raise ValueError(f"{algorithm.name} requires an RSA private key")
        with self._lock:
            self._keys[key_name] = _LocalKey(algorithm, private_key)

    def _lookup(self, key_name: str) -> _LocalKey:
        with self._lock:
            key = self._keys.get(key_name)
        if key is None:
            raise UnknownKey(key_name)
        return key

    def get_key_metadata(self, key_name: str) -> KeyMetadata:
        return KeyMetadata(name=key_name, algorithm=self._lookup(key_name).algorithm)

    def get_public_key_pem(self, key_name: str) -> bytes:
        pk = self._lookup(key_name).private_key.public_key()
        return pk.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def asymmetric_sign(self, key_name: str, digest: KmsDigest) -> bytes:
        key = self._lookup(key_name)
        kind = digest_for(key.algorithm)
        if digest.kind != kind.name:
            raise ValueError(f"{key.algorithm.name} expects a {kind.name} digest, got {digest.kind}")
        h = kind.hash_algorithm()
        sk = key.private_key
        name = key.algorithm.name
        if isinstance(sk, ec.EllipticCurvePrivateKey):
            return sk.sign(digest.value, ec.ECDSA(Prehashed(h)))
        if name.startswith("RSA_SIGN_PSS"):
            pad = padding.PSS(mgf=padding.MGF1(kind.hash_algorithm()), salt_length=kind.digest_size)
            return sk.sign(digest.value, pad, Prehashed(h))
        if name.startswith("RSA_SIGN_PKCS1"):
            return sk.sign(digest.value, padding.PKCS1v15(), Prehashed(h))
        raise UnsupportedAlgorithm(key.algorithm)
