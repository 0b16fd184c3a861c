"""Algorithm registry for KMS-backed CSR signing.

Maps a KMS key version algorithm to the X.509 signature AlgorithmIdentifier
that is embedded in the certification request.

Supported algorithms:
  - EC_SIGN_P256_SHA256            -> ecdsa-with-SHA256
  - EC_SIGN_P384_SHA384            -> ecdsa-with-SHA384
  - RSA_SIGN_PKCS1_*_SHA256        -> sha256WithRSAEncryption
  - RSA_SIGN_PKCS1_4096_SHA512     -> sha512WithRSAEncryption
  - RSA_SIGN_PSS_*_SHA256          -> RSASSA-PSS (SHA-256, MGF1-SHA-256)
  - RSA_SIGN_PSS_4096_SHA512       -> RSASSA-PSS (SHA-512, MGF1-SHA-512)

PSS parameters use a salt length equal to the digest length and NULL hash
parameters, which is what the KMS produces.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple, Union

from pyasn1.codec.der import encoder
from pyasn1.type import tag, univ
from pyasn1_modules import rfc4055, rfc5280, rfc5480


class UnsupportedAlgorithm(ValueError):
    """Raised when a key algorithm has no signing mapping."""

    def __init__(self, algorithm: object, message: str = "Unsupported signature algorithm"):
        self.algorithm = algorithm
        super().__init__(f"{message}: {_name_of(algorithm)}")


class KeyAlgorithm(str, Enum):
    """Key version algorithms as named by Cloud KMS."""

    GOOGLE_SYMMETRIC_ENCRYPTION = "GOOGLE_SYMMETRIC_ENCRYPTION"
    HMAC_SHA256 = "HMAC_SHA256"

    EC_SIGN_P256_SHA256 = "EC_SIGN_P256_SHA256"
    EC_SIGN_P384_SHA384 = "EC_SIGN_P384_SHA384"
    EC_SIGN_SECP256K1_SHA256 = "EC_SIGN_SECP256K1_SHA256"
    EC_SIGN_ED25519 = "EC_SIGN_ED25519"

    RSA_SIGN_PSS_2048_SHA256 = "RSA_SIGN_PSS_2048_SHA256"
    RSA_SIGN_PSS_3072_SHA256 = "RSA_SIGN_PSS_3072_SHA256"
    RSA_SIGN_PSS_4096_SHA256 = "RSA_SIGN_PSS_4096_SHA256"
    RSA_SIGN_PSS_4096_SHA512 = "RSA_SIGN_PSS_4096_SHA512"

    RSA_SIGN_PKCS1_2048_SHA256 = "RSA_SIGN_PKCS1_2048_SHA256"
    RSA_SIGN_PKCS1_3072_SHA256 = "RSA_SIGN_PKCS1_3072_SHA256"
    RSA_SIGN_PKCS1_4096_SHA256 = "RSA_SIGN_PKCS1_4096_SHA256"
    RSA_SIGN_PKCS1_4096_SHA512 = "RSA_SIGN_PKCS1_4096_SHA512"

    RSA_SIGN_RAW_PKCS1_2048 = "RSA_SIGN_RAW_PKCS1_2048"
    RSA_SIGN_RAW_PKCS1_3072 = "RSA_SIGN_RAW_PKCS1_3072"
    RSA_SIGN_RAW_PKCS1_4096 = "RSA_SIGN_RAW_PKCS1_4096"

    RSA_DECRYPT_OAEP_2048_SHA256 = "RSA_DECRYPT_OAEP_2048_SHA256"
    RSA_DECRYPT_OAEP_3072_SHA256 = "RSA_DECRYPT_OAEP_3072_SHA256"
    RSA_DECRYPT_OAEP_4096_SHA256 = "RSA_DECRYPT_OAEP_4096_SHA256"
    RSA_DECRYPT_OAEP_4096_SHA512 = "RSA_DECRYPT_OAEP_4096_SHA512"

    @classmethod
    def from_name(cls, name: Union[str, "KeyAlgorithm"]) -> "KeyAlgorithm":
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            raise UnsupportedAlgorithm(name, "Unknown key algorithm") from None

    def is_ec(self) -> bool:
        return self.name.startswith("EC")

    def is_rsa(self) -> bool:
        return self.name.startswith("RSA")


def _name_of(algorithm: object) -> str:
    return algorithm.name if isinstance(algorithm, Enum) else str(algorithm)


def _hash_identifier(hash_oid: univ.ObjectIdentifier) -> rfc5280.AlgorithmIdentifier:
    ident = rfc5280.AlgorithmIdentifier()
    ident["algorithm"] = hash_oid
    ident["parameters"] = _DER_NULL
    return ident


def _pss_parameters(hash_oid: univ.ObjectIdentifier, salt_length: int) -> bytes:
    mgf = rfc5280.AlgorithmIdentifier()
    mgf["algorithm"] = rfc4055.id_mgf1
    mgf["parameters"] = encoder.encode(_hash_identifier(hash_oid))

    params = rfc4055.RSASSA_PSS_params()
    params["hashAlgorithm"] = _hash_identifier(hash_oid).subtype(
        explicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 0), cloneValueFlag=True)
    params["maskGenAlgorithm"] = mgf.subtype(
        explicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 1), cloneValueFlag=True)
    params["saltLength"] = salt_length
    return encoder.encode(params)


_DER_NULL = encoder.encode(univ.Null(""))

# algorithm -> (signature OID, DER-encoded parameters or None)
_IDENTIFIERS: Dict[KeyAlgorithm, Tuple[univ.ObjectIdentifier, Optional[bytes]]] = {
    KeyAlgorithm.EC_SIGN_P256_SHA256: (rfc5480.ecdsa_with_SHA256, None),
    KeyAlgorithm.EC_SIGN_P384_SHA384: (rfc5480.ecdsa_with_SHA384, None),
    KeyAlgorithm.RSA_SIGN_PKCS1_2048_SHA256: (rfc4055.sha256WithRSAEncryption, _DER_NULL),
    KeyAlgorithm.RSA_SIGN_PKCS1_3072_SHA256: (rfc4055.sha256WithRSAEncryption, _DER_NULL),
    KeyAlgorithm.RSA_SIGN_PKCS1_4096_SHA256: (rfc4055.sha256WithRSAEncryption, _DER_NULL),
    KeyAlgorithm.RSA_SIGN_PKCS1_4096_SHA512: (rfc4055.sha512WithRSAEncryption, _DER_NULL),
    KeyAlgorithm.RSA_SIGN_PSS_2048_SHA256: (rfc4055.id_RSASSA_PSS, _pss_parameters(rfc4055.id_sha256, 32)),
    KeyAlgorithm.RSA_SIGN_PSS_3072_SHA256: (rfc4055.id_RSASSA_PSS, _pss_parameters(rfc4055.id_sha256, 32)),
    KeyAlgorithm.RSA_SIGN_PSS_4096_SHA256: (rfc4055.id_RSASSA_PSS, _pss_parameters(rfc4055.id_sha256, 32)),
    KeyAlgorithm.RSA_SIGN_PSS_4096_SHA512: (rfc4055.id_RSASSA_PSS, _pss_parameters(rfc4055.id_sha512, 64)),
}


def is_supported(algorithm: object) -> bool:
    return algorithm in _IDENTIFIERS


def to_identifier(algorithm: KeyAlgorithm) -> rfc5280.AlgorithmIdentifier:
    """Return a fresh AlgorithmIdentifier for ``algorithm``.

    Raises UnsupportedAlgorithm for anything outside the signing table.
    """
    spec = _IDENTIFIERS.get(algorithm)  # type: ignore[arg-type]
    if spec is None:
        raise UnsupportedAlgorithm(algorithm)
    oid, parameters = spec
    ident = rfc5280.AlgorithmIdentifier()
    ident["algorithm"] = oid
    if parameters is not None:
        ident["parameters"] = parameters
    return ident


__all__ = ["KeyAlgorithm", "UnsupportedAlgorithm", "to_identifier", "is_supported"]
