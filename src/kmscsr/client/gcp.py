"""Cloud KMS adapter for the KmsServiceClient facade.

Requires the optional ``google-cloud-kms`` dependency (``pip install
kms-csr[gcp]``) unless an already constructed client is passed in.
"""
from __future__ import annotations

from typing import Any, Optional

from ..crypto.alg_registry import KeyAlgorithm
from ..crypto.digest import KmsDigest
from .base import KeyMetadata


class GcpKmsServiceClient:
    def __init__(self, client: Any = None, endpoint: Optional[str] = None):
        if client is None:
            try:
                from google.api_core.client_options import ClientOptions
                from google.cloud import kms_v1
            except ImportError as e:  # pragma: no cover - depends on optional extra
                raise RuntimeError(
                    "google-cloud-kms must be installed to use GcpKmsServiceClient"
                ) from e
            options = ClientOptions(api_endpoint=endpoint) if endpoint else None
            client = kms_v1.KeyManagementServiceClient(client_options=options)
        self._client = client

    def get_key_metadata(self, key_name: str) -> KeyMetadata:
        version = self._client.get_crypto_key_version(request={"name": key_name})
        algorithm = version.algorithm
        # proto-plus enums expose .name; plain strings pass through
        return KeyMetadata(
            name=key_name,
            algorithm=KeyAlgorithm.from_name(getattr(algorithm, "name", algorithm)),
        )

    def get_public_key_pem(self, key_name: str) -> bytes:
        response = self._client.get_public_key(request={"name": key_name})
        pem = response.pem
        return pem.encode() if isinstance(pem, str) else bytes(pem)

    def asymmetric_sign(self, key_name: str, digest: KmsDigest) -> bytes:
        response = self._client.asymmetric_sign(
            request={"name": key_name, "digest": digest.to_request()}
        )
        return bytes(response.signature)
