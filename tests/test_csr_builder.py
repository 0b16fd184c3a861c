from datetime import timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, padding
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID
from pyasn1.codec.der import decoder
from pyasn1_modules import rfc2986, rfc4055

from kmscsr.cache.key_cache import KmsKeyCache
from kmscsr.config import CsrConfig
from kmscsr.crypto.alg_registry import KeyAlgorithm, UnsupportedAlgorithm
from kmscsr.crypto.digest import digest_for
from kmscsr.csr.builder import CsrBuilder, CsrBuilderFactory, MissingFieldError

from conftest import key_name

PRINCIPAL = x509.Name([
    x509.NameAttribute(NameOID.COMMON_NAME, "io.example"),
    x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Example AB"),
    x509.NameAttribute(NameOID.COUNTRY_NAME, "SE"),
    x509.NameAttribute(NameOID.LOCALITY_NAME, "Stockholm"),
])

SIG_OIDS = {
    KeyAlgorithm.EC_SIGN_P256_SHA256: SignatureAlgorithmOID.ECDSA_WITH_SHA256,
    KeyAlgorithm.EC_SIGN_P384_SHA384: SignatureAlgorithmOID.ECDSA_WITH_SHA384,
    KeyAlgorithm.RSA_SIGN_PKCS1_2048_SHA256: SignatureAlgorithmOID.RSA_WITH_SHA256,
    KeyAlgorithm.RSA_SIGN_PKCS1_3072_SHA256: SignatureAlgorithmOID.RSA_WITH_SHA256,
    KeyAlgorithm.RSA_SIGN_PKCS1_4096_SHA256: SignatureAlgorithmOID.RSA_WITH_SHA256,
    KeyAlgorithm.RSA_SIGN_PKCS1_4096_SHA512: SignatureAlgorithmOID.RSA_WITH_SHA512,
    KeyAlgorithm.RSA_SIGN_PSS_2048_SHA256: SignatureAlgorithmOID.RSASSA_PSS,
    KeyAlgorithm.RSA_SIGN_PSS_3072_SHA256: SignatureAlgorithmOID.RSASSA_PSS,
    KeyAlgorithm.RSA_SIGN_PSS_4096_SHA256: SignatureAlgorithmOID.RSASSA_PSS,
    KeyAlgorithm.RSA_SIGN_PSS_4096_SHA512: SignatureAlgorithmOID.RSASSA_PSS,
}


def _verify(csr: x509.CertificateSigningRequest, alg: KeyAlgorithm):
    kind = digest_for(alg)
    pk = csr.public_key()
    h = kind.hash_algorithm()
    if alg.is_ec():
        pk.verify(csr.signature, csr.tbs_certrequest_bytes, ec.ECDSA(h))
    elif alg.name.startswith("RSA_SIGN_PSS"):
        pss = padding.PSS(mgf=padding.MGF1(kind.hash_algorithm()), salt_length=kind.digest_size)
        pk.verify(csr.signature, csr.tbs_certrequest_bytes, pss, h)
    else:
        pk.verify(csr.signature, csr.tbs_certrequest_bytes, padding.PKCS1v15(), h)


@pytest.mark.parametrize("alg", list(SIG_OIDS))
def test_round_trip(alg, counting_client, private_keys):
    factory = CsrBuilderFactory(counting_client)
    result = factory.builder().for_principal(PRINCIPAL).with_key(key_name(alg)).build()

    csr = result.to_cryptography()
    assert csr.subject == PRINCIPAL
    assert csr.signature_algorithm_oid == SIG_OIDS[alg]
    assert csr.public_key().public_numbers() == private_keys[alg].public_key().public_numbers()
    _verify(csr, alg)
    # is_signature_valid rejects RSASSA-PSS requests on older cryptography releases; _verify covers them
    if csr.signature_algorithm_oid != SignatureAlgorithmOID.RSASSA_PSS:
        assert csr.is_signature_valid
    assert counting_client.calls == {"get_key_metadata": 1, "get_public_key_pem": 1, "asymmetric_sign": 1}


def test_pss_request_carries_salt_length(counting_client):
    alg = KeyAlgorithm.RSA_SIGN_PSS_4096_SHA512
    der = CsrBuilderFactory(counting_client).builder().for_principal(PRINCIPAL).with_key(key_name(alg)).build().as_der()
    req, rest = decoder.decode(der, asn1Spec=rfc2986.CertificationRequest())
    assert rest == b""
    assert req["signatureAlgorithm"]["algorithm"] == rfc4055.id_RSASSA_PSS
    params, _ = decoder.decode(req["signatureAlgorithm"]["parameters"].asOctets(), asn1Spec=rfc4055.RSASSA_PSS_params())
    assert int(params["saltLength"]) == 64
    assert int(req["certificationRequestInfo"]["version"]) == 0


def test_pem_output(counting_client):
    pem = (
        CsrBuilderFactory(counting_client)
        .builder()
        .for_principal("CN=io.example,O=Example AB,C=SE")
        .with_key(key_name(KeyAlgorithm.EC_SIGN_P256_SHA256))
        .build()
        .as_pem()
    )
    assert pem.startswith("-----BEGIN CERTIFICATE REQUEST-----\n")
    assert pem.rstrip().endswith("-----END CERTIFICATE REQUEST-----")
    csr = x509.load_pem_x509_csr(pem.encode())
    assert csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "io.example"
    assert csr.is_signature_valid


def test_factory_builders_share_cache(counting_client):
    factory = CsrBuilderFactory(counting_client)
    name = key_name(KeyAlgorithm.EC_SIGN_P384_SHA384)
    for _ in range(3):
        factory.builder().for_principal(PRINCIPAL).with_key(name).build()
    assert counting_client.calls["get_key_metadata"] == 1
    assert counting_client.calls["get_public_key_pem"] == 1
    assert counting_client.calls["asymmetric_sign"] == 3
    assert name in factory.cache


def test_factory_from_config(counting_client):
    factory = CsrBuilderFactory.from_config(counting_client, CsrConfig(key_cache_ttl_sec=120))
    assert factory.cache.ttl == timedelta(seconds=120)
    assert CsrBuilderFactory(counting_client).cache.ttl == timedelta(minutes=60)


def test_missing_key_name_fails_before_remote_calls(counting_client):
    builder = CsrBuilder(counting_client, KmsKeyCache(counting_client)).for_principal(PRINCIPAL)
    with pytest.raises(MissingFieldError) as exc:
        builder.build()
    assert exc.value.field == "key_name"
    assert counting_client.total_calls == 0


def test_missing_principal_fails_before_remote_calls(counting_client):
    builder = CsrBuilder(counting_client, KmsKeyCache(counting_client))
    builder.with_key(key_name(KeyAlgorithm.EC_SIGN_P256_SHA256))
    with pytest.raises(MissingFieldError) as exc:
        builder.build()
    assert exc.value.field == "principal"
    assert counting_client.total_calls == 0


def test_setters_reject_empty_values(counting_client):
    builder = CsrBuilderFactory(counting_client).builder()
    with pytest.raises(ValueError):
        builder.with_key("")
    with pytest.raises(ValueError):
        builder.for_principal("  ")
    with pytest.raises(TypeError):
        builder.for_principal(42)


def test_unsupported_signing_algorithm_never_signs(counting_client, local_client):
    # secp256k1 parses as an EC key but has no signature identifier
    name = key_name(KeyAlgorithm.EC_SIGN_SECP256K1_SHA256)
    local_client.add_key(name, KeyAlgorithm.EC_SIGN_SECP256K1_SHA256, ec.generate_private_key(ec.SECP256K1()))
    with pytest.raises(UnsupportedAlgorithm):
        CsrBuilderFactory(counting_client).builder().for_principal(PRINCIPAL).with_key(name).build()
    assert counting_client.calls["asymmetric_sign"] == 0
