"""Time-bounded cache of KMS key metadata and public keys.

Entries expire after ``ttl`` without access (sliding expiration). Loads are
single-flight per key name: concurrent ``get`` calls for a key that is not
cached share one remote load. Loads for different keys run in parallel.

Implementation notes:
- One mutex guards both maps; it is never held across a remote call.
- In-flight loads are ``concurrent.futures.Future`` cells; the first caller
  owns the load and resolves the future, the rest block on ``result()``.
- Failures resolve the future with the exception and are not cached.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, Optional, Union

from ..client.base import KmsServiceClient
from ..crypto.alg_registry import KeyAlgorithm
from ..crypto.keyloader import PublicKey, to_public_key
from ..obs import prom
from ..utils.logging import get_logger

DEFAULT_TTL = timedelta(minutes=60)

log = get_logger()


@dataclass(frozen=True)
class KeyCacheEntry:
    key_name: str
    algorithm: KeyAlgorithm
    public_key: PublicKey


class _Slot:
    __slots__ = ("entry", "last_access")

    def __init__(self, entry: KeyCacheEntry, last_access: float):
        self.entry = entry
        self.last_access = last_access


class KmsKeyCache:
    def __init__(
        self,
        client: KmsServiceClient,
        ttl: Union[timedelta, float, None] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if client is None:
            raise ValueError("client is required")
        if ttl is None:
            ttl = DEFAULT_TTL
        ttl_s = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
        if ttl_s <= 0:
            raise ValueError(f"ttl must be positive, got {ttl_s}")
        self._client = client
        self._ttl_s = ttl_s
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, _Slot] = {}
        self._inflight: Dict[str, Future] = {}

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._ttl_s)

    def _expired(self, slot: _Slot, now: float) -> bool:
        return now - slot.last_access >= self._ttl_s

    def get(self, key_name: str) -> KeyCacheEntry:
        """Return the entry for ``key_name``, loading it from KMS on miss.

        Fails if the key does not exist, the caller lacks access, or the key
        is not an EC/RSA signing key. Every caller waiting on a failed load
        receives the same exception.
        """
        if not key_name:
            raise ValueError("key_name is required")
        with self._lock:
            now = self._clock()
            slot = self._entries.get(key_name)
            if slot is not None:
                if not self._expired(slot, now):
                    slot.last_access = now
                    prom.observe_lookup("hit")
                    return slot.entry
                del self._entries[key_name]
                log.debug(f"key cache expired key={key_name}")
            fut = self._inflight.get(key_name)
            owner = fut is None
            if owner:
                fut = Future()
                self._inflight[key_name] = fut
        if not owner:
            prom.observe_lookup("coalesced")
            return fut.result()

        prom.observe_lookup("miss")
        try:
            entry = self._load(key_name)
        except BaseException as e:
            with self._lock:
                self._inflight.pop(key_name, None)
            prom.observe_load(False)
            log.warning(f"key cache load failed key={key_name}: {e}")
            fut.set_exception(e)
            raise
        with self._lock:
            self._entries[key_name] = _Slot(entry, self._clock())
            del self._inflight[key_name]
        prom.observe_load(True)
        fut.set_result(entry)
        return entry

    def _load(self, key_name: str) -> KeyCacheEntry:
        meta = self._client.get_key_metadata(key_name)
        algorithm = KeyAlgorithm.from_name(meta.algorithm)
        pem = self._client.get_public_key_pem(key_name)
        public_key = to_public_key(algorithm, pem)
        log.info(f"key cache loaded key={key_name} alg={algorithm.name}")
        return KeyCacheEntry(key_name=key_name, algorithm=algorithm, public_key=public_key)

    def invalidate(self, key_name: str) -> None:
        with self._lock:
            self._entries.pop(key_name, None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries; returns how many were evicted."""
        with self._lock:
            now = self._clock()
            stale = [k for k, s in self._entries.items() if self._expired(s, now)]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def __contains__(self, key_name: object) -> bool:
        with self._lock:
            slot: Optional[_Slot] = self._entries.get(key_name)  # type: ignore[arg-type]
            return slot is not None and not self._expired(slot, self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
