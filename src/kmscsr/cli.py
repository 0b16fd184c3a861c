from __future__ import annotations

import argparse
from datetime import timedelta
from pathlib import Path

from .client.base import KmsServiceClient
from .client.gcp import GcpKmsServiceClient
from .config import load_config
from .csr.builder import CsrBuilderFactory


def _make_client(endpoint: str | None) -> KmsServiceClient:
    return GcpKmsServiceClient(endpoint=endpoint)


def cmd_csr(args: argparse.Namespace) -> int:
    cfg = load_config()
    ttl = args.cache_ttl if args.cache_ttl is not None else cfg.key_cache_ttl_sec
    client = _make_client(args.endpoint or cfg.kms_endpoint)
    factory = CsrBuilderFactory(client, key_cache_ttl=timedelta(seconds=ttl))
    pem = factory.builder().for_principal(args.subject).with_key(args.key).build().as_pem()
    if args.out:
        Path(args.out).write_text(pem)
        print(f"wrote {args.out} ({len(pem)} bytes)")
    else:
        print(pem, end="")
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("kmscsr", description="Build a CSR signed by a KMS key version")
    p.add_argument("--key", required=True, help="crypto key version resource name")
    p.add_argument("--subject", required=True, help='RFC 4514 subject, e.g. "CN=example.org,O=Example"')
    p.add_argument("--out", help="write PEM here instead of stdout")
    p.add_argument("--cache-ttl", dest="cache_ttl", type=int, help="key cache TTL in seconds")
    p.add_argument("--endpoint", help="KMS API endpoint override")
    p.set_defaults(func=cmd_csr)
    args = p.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
