"""CSR builder over a KMS client and a shared key cache.

Example::

    factory = CsrBuilderFactory(GcpKmsServiceClient())
    pem = (
        factory.builder()
        .for_principal("CN=io.example,O=Example AB,C=SE")
        .with_key("projects/p/locations/l/keyRings/r/cryptoKeys/k/cryptoKeyVersions/1")
        .build()
        .as_pem()
    )
"""
from __future__ import annotations

from datetime import timedelta
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from ..cache.key_cache import KmsKeyCache
from ..client.base import KmsServiceClient
from ..config import CsrConfig
from ..obs import prom
from ..signer.content_signer import KmsContentSigner
from ..utils.logging import get_logger
from .request import sign_request

log = get_logger()


class MissingFieldError(ValueError):
    """Raised by build() when a required builder field is unset."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class CsrResult:
    """A built CSR. Serialization only; the request is already signed."""

    def __init__(self, der: bytes):
        self._der = der
        self._csr = x509.load_der_x509_csr(der)

    def as_der(self) -> bytes:
        return self._der

    def as_pem(self) -> str:
        return self._csr.public_bytes(serialization.Encoding.PEM).decode()

    def to_cryptography(self) -> x509.CertificateSigningRequest:
        return self._csr


class CsrBuilder:
    def __init__(self, client: KmsServiceClient, cache: KmsKeyCache):
        if client is None or cache is None:
            raise ValueError("client and cache are required")
        self._client = client
        self._cache = cache
        self._key_name: Optional[str] = None
        self._principal: Optional[x509.Name] = None

    def with_key(self, key_name: str) -> "CsrBuilder":
        if not key_name:
            raise ValueError("key_name must not be empty")
        self._key_name = key_name
        return self

    def for_principal(self, principal: Union[x509.Name, str]) -> "CsrBuilder":
        if isinstance(principal, str):
            if not principal.strip():
                raise ValueError("principal must not be empty")
            principal = x509.Name.from_rfc4514_string(principal)
        if not isinstance(principal, x509.Name):
            raise TypeError(f"principal must be an x509.Name or RFC 4514 string, got {type(principal).__name__}")
        self._principal = principal
        return self

    def build(self) -> CsrResult:
        if self._key_name is None:
            raise MissingFieldError("key_name", "Missing crypto key version name")
        if self._principal is None:
            raise MissingFieldError("principal", "Missing X500 principal")
        with prom.CSR_BUILD_SECONDS.time():
            entry = self._cache.get(self._key_name)
            signer = KmsContentSigner(self._client, self._key_name, entry.algorithm)
            der = sign_request(self._principal, entry.public_key, signer)
        log.info(f"built csr key={self._key_name} alg={entry.algorithm.name} subject={self._principal.rfc4514_string()}")
        return CsrResult(der)


class CsrBuilderFactory:
    """Hands out CsrBuilders sharing one client and one key cache (default TTL 60 min)."""

    def __init__(self, client: KmsServiceClient, key_cache_ttl: Union[timedelta, float, None] = None):
        if client is None:
            raise ValueError("client is required")
        self._client = client
        self._cache = KmsKeyCache(client, ttl=key_cache_ttl)

    @classmethod
    def from_config(cls, client: KmsServiceClient, config: CsrConfig) -> "CsrBuilderFactory":
        return cls(client, key_cache_ttl=timedelta(seconds=config.key_cache_ttl_sec))

    @property
    def cache(self) -> KmsKeyCache:
        return self._cache

    def builder(self) -> CsrBuilder:
        return CsrBuilder(self._client, self._cache)
