"""Per-key serialization of relation mutations.

Two layers are used by the store:

* ``StripedLock`` serializes threads of one process. Keys are hashed onto a
  fixed number of ``threading.Lock`` shards, so memory stays bounded no matter
  how many keys are seen. Unrelated keys may share a shard; that only costs
  some waiting.
* ``advisory_key`` turns the same key into the signed 64-bit integer expected
  by PostgreSQL's ``pg_advisory_xact_lock`` so worker processes serialize too.
"""
from __future__ import annotations
import hashlib
import threading
from contextlib import contextmanager
from typing import Iterator


def _digest(key: str) -> bytes:
    return hashlib.blake2s(key.encode("utf-8"), digest_size=8).digest()


def advisory_key(key: str) -> int:
    """Signed 64-bit lock id for ``key``."""
    return int.from_bytes(_digest(key), "big", signed=True)


class StripedLock:
    """Fixed pool of locks addressed by string keys."""

    _SHARDS = 64

    def __init__(self, shards: int | None = None):
        self._shards = shards or self._SHARDS
        self._locks: list[threading.Lock] = [threading.Lock() for _ in range(self._shards)]

    def _shard(self, key: str) -> int:
        return int.from_bytes(_digest(key), "big") % self._shards

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Hold the locks of all ``keys`` for the duration of the block.

        Shards are acquired in ascending order so two callers locking an
        overlapping set of keys cannot deadlock.
        """
        shards = sorted({self._shard(key) for key in keys})
        acquired: list[threading.Lock] = []
        try:
            for shard in shards:
                lock = self._locks[shard]
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
