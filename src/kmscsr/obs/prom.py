"""Prometheus instrumentation for KMS-backed CSR signing.

Uses a private registry so embedding applications decide whether and where
to expose it. Labels stay low-cardinality (result / algorithm, never key names).
"""
from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

REGISTRY = CollectorRegistry()

KEY_CACHE_LOOKUPS = Counter(
    "kmscsr_key_cache_lookups_total",
    "Key cache lookups by result (hit, miss, coalesced).",
    ["result"],
    registry=REGISTRY,
)
KEY_CACHE_LOADS = Counter(
    "kmscsr_key_cache_loads_total",
    "Remote key metadata/public key loads by result (ok, error).",
    ["result"],
    registry=REGISTRY,
)
KMS_SIGN = Counter(
    "kmscsr_kms_sign_total",
    "Remote asymmetric sign calls by key algorithm.",
    ["algorithm"],
    registry=REGISTRY,
)
CSR_BUILD_SECONDS = Histogram(
    "kmscsr_csr_build_seconds",
    "CSR build latency including remote calls (s).",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
    registry=REGISTRY,
)


def observe_lookup(result: str):
    KEY_CACHE_LOOKUPS.labels(result=result).inc()


def observe_load(ok: bool):
    KEY_CACHE_LOADS.labels(result="ok" if ok else "error").inc()


def observe_sign(algorithm: str):
    KMS_SIGN.labels(algorithm=algorithm).inc()


def prometheus_latest() -> tuple[bytes, str]:
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
