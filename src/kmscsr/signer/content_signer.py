from __future__ import annotations

import io
from enum import Enum

from pyasn1_modules import rfc5280

from ..client.base import KmsServiceClient
from ..crypto.alg_registry import KeyAlgorithm, to_identifier
from ..crypto.digest import DigestKind, digest_for
from ..obs import prom
from ..utils.logging import get_logger

log = get_logger()


class SignerStateError(RuntimeError):
    """Raised on write-after-sign or a second sign on the same signer."""


class SignerState(Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    SIGNED = "signed"


class KmsContentSigner:
    """Content signer backed by a KMS key version.

    Callers write the to-be-signed bytes, then call ``sign()`` once. The
    buffer is hashed locally and only the wrapped digest is sent to KMS.
    Single producer only; not safe for concurrent writers.
    """

    def __init__(self, client: KmsServiceClient, key_name: str, algorithm: KeyAlgorithm):
        if client is None:
            raise ValueError("client is required")
        if not key_name:
            raise ValueError("key_name is required")
        if algorithm is None:
            raise ValueError("algorithm is required")
        self._client = client
        self._key_name = key_name
        self._algorithm = KeyAlgorithm.from_name(algorithm)
        self._buf = io.BytesIO()
        self._state = SignerState.EMPTY

    @property
    def key_name(self) -> str:
        return self._key_name

    @property
    def algorithm(self) -> KeyAlgorithm:
        return self._algorithm

    @property
    def state(self) -> SignerState:
        return self._state

    @property
    def digest_kind(self) -> DigestKind:
        return digest_for(self._algorithm)

    def get_algorithm_identifier(self) -> rfc5280.AlgorithmIdentifier:
        return to_identifier(self._algorithm)

    @property
    def algorithm_identifier(self) -> rfc5280.AlgorithmIdentifier:
        return self.get_algorithm_identifier()

    def write(self, data: bytes) -> int:
        if self._state is SignerState.SIGNED:
            raise SignerStateError("cannot write to a signer that has already signed")
        n = self._buf.write(data)
        self._state = SignerState.ACCUMULATING
        return n

    def sign(self) -> bytes:
        if self._state is SignerState.SIGNED:
            raise SignerStateError("signer has already produced a signature")
        digest = self.digest_kind.digest_and_wrap(self._buf.getvalue())
        log.debug(f"kms sign key={self._key_name} alg={self._algorithm.name} digest={digest.kind}")
        signature = self._client.asymmetric_sign(self._key_name, digest)
        prom.observe_sign(self._algorithm.name)
        self._state = SignerState.SIGNED
        return bytes(signature)
