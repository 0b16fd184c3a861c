"""PKCS#10 request assembly around an external content signer.

The signer sees exactly the DER of CertificationRequestInfo; its
AlgorithmIdentifier and signature are placed into CertificationRequest.
"""
from __future__ import annotations

from typing import Protocol

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from pyasn1.codec.der import decoder, encoder
from pyasn1.type import univ
from pyasn1_modules import rfc2986, rfc5280

from ..crypto.keyloader import PublicKey


class ContentSigner(Protocol):
    def get_algorithm_identifier(self) -> rfc5280.AlgorithmIdentifier: ...
    def write(self, data: bytes) -> int: ...
    def sign(self) -> bytes: ...


def build_request_info(subject: x509.Name, public_key: PublicKey) -> rfc2986.CertificationRequestInfo:
    name, _ = decoder.decode(subject.public_bytes(), asn1Spec=rfc5280.Name())
    spki_der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    spki, _ = decoder.decode(spki_der, asn1Spec=rfc5280.SubjectPublicKeyInfo())

    info = rfc2986.CertificationRequestInfo()
    info["version"] = 0
    info["subject"] = name
    info["subjectPKInfo"] = spki
    info["attributes"].clear()
    return info


def sign_request(subject: x509.Name, public_key: PublicKey, signer: ContentSigner) -> bytes:
    """Drive ``signer`` over the request info and return the DER request."""
    # Resolve the identifier first so unsupported algorithms fail before KMS is called.
    algorithm_identifier = signer.get_algorithm_identifier()
    info = build_request_info(subject, public_key)
    signer.write(encoder.encode(info))
    signature = signer.sign()

    req = rfc2986.CertificationRequest()
    req["certificationRequestInfo"] = info
    req["signatureAlgorithm"] = algorithm_identifier
    req["signature"] = univ.BitString.fromOctetString(signature)
    return encoder.encode(req)
