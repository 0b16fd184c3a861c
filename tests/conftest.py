import threading

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from kmscsr.client.local import LocalKmsServiceClient
from kmscsr.crypto.alg_registry import KeyAlgorithm

KEY_PREFIX = "projects/demo/locations/global/keyRings/ring/cryptoKeys"


def key_name(alg: KeyAlgorithm, version: int = 1) -> str:
    return f"{KEY_PREFIX}/{alg.name.lower()}/cryptoKeyVersions/{version}"


class CountingClient:
    """Wraps a KmsServiceClient, counting calls per operation.

    ``gate`` (threading.Event) blocks get_key_metadata until set; ``fail_with``
    makes get_key_metadata raise after passing the gate.
    """

    def __init__(self, inner, gate=None, fail_with=None):
        self.inner = inner
        self.gate = gate
        self.fail_with = fail_with
        self.entered = threading.Event()
        self.calls = {"get_key_metadata": 0, "get_public_key_pem": 0, "asymmetric_sign": 0}
        self.sign_requests = []
        self._lock = threading.Lock()

    def _count(self, op):
        with self._lock:
            self.calls[op] += 1

    def get_key_metadata(self, key_name):
        self._count("get_key_metadata")
        self.entered.set()
        if self.gate is not None:
            assert self.gate.wait(timeout=5)
        if self.fail_with is not None:
            raise self.fail_with
        return self.inner.get_key_metadata(key_name)

    def get_public_key_pem(self, key_name):
        self._count("get_public_key_pem")
        return self.inner.get_public_key_pem(key_name)

    def asymmetric_sign(self, key_name, digest):
        self._count("asymmetric_sign")
        self.sign_requests.append((key_name, digest))
        return self.inner.asymmetric_sign(key_name, digest)

    @property
    def total_calls(self):
        return sum(self.calls.values())


@pytest.fixture(scope="session")
def ec_p256_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_p384_key():
    return ec.generate_private_key(ec.SECP384R1())


@pytest.fixture(scope="session")
def rsa_key():
    # one 2048-bit key backs every RSA algorithm; the local client does not check modulus size
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_keys(ec_p256_key, ec_p384_key, rsa_key):
    keys = {
        KeyAlgorithm.EC_SIGN_P256_SHA256: ec_p256_key,
        KeyAlgorithm.EC_SIGN_P384_SHA384: ec_p384_key,
    }
    for alg in KeyAlgorithm:
        if alg.name.startswith(("RSA_SIGN_PKCS1", "RSA_SIGN_PSS")):
            keys[alg] = rsa_key
    return keys


@pytest.fixture
def local_client(private_keys):
    client = LocalKmsServiceClient()
    for alg, sk in private_keys.items():
        client.add_key(key_name(alg), alg, sk)
    return client


@pytest.fixture
def counting_client(local_client):
    return CountingClient(local_client)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
