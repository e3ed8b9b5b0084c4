"""Time-bounded advisory locks marking conversions in progress."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis

from webpify.core.config import Settings
from webpify.core.logging import get_logger
from webpify.models.job import SizeSpec, normalize_size_key

logger = get_logger(__name__)

Clock = Callable[[], float]


class LeaseStore(Protocol):
    """Key/value store with per-key expiry."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl: int) -> None:
        ...

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryLeaseStore:
    """Thread-safe expiring dictionary driven by an injectable clock."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._lock = Lock()
        self._entries: Dict[str, Tuple[str, float]] = {}

    def _live(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live(key)

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._entries[key] = (value, self._clock() + ttl)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class RedisLeaseStore:
    """LeaseStore backed by Redis key expiry."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def get(self, key: str) -> Optional[str]:
        value = self._client.get(key)
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else str(value)

    def set(self, key: str, value: str, ttl: int) -> None:
        self._client.set(key, value, ex=ttl)

    def set_if_absent(self, key: str, value: str, ttl: int) -> bool:
        return bool(self._client.set(key, value, ex=ttl, nx=True))

    def delete(self, key: str) -> None:
        self._client.delete(key)


class LeaseManager:
    """Per (subject, size) leases that expire on their own after a crash."""

    def __init__(self, store: LeaseStore, settings: Settings, clock: Clock = time.time) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock

    @property
    def timeout(self) -> int:
        return self._settings.conversion_timeout

    def key(self, subject_id: int, size: SizeSpec) -> str:
        return f"{self._settings.lease_key_prefix}{subject_id}_{normalize_size_key(size)}"

    def acquire(self, subject_id: int, size: SizeSpec) -> None:
        """Create or refresh the lease; callers check ``in_progress`` first."""

        self._store.set(self.key(subject_id, size), repr(self._clock()), self.timeout)

    def try_acquire(self, subject_id: int, size: SizeSpec) -> bool:
        """Atomically take the lease if nobody holds a live one."""

        key = self.key(subject_id, size)
        if self._store.set_if_absent(key, repr(self._clock()), self.timeout):
            return True

        if self.in_progress(subject_id, size):
            return False

        # A stale value the store has not expired yet; overwrite it.
        self._store.set(key, repr(self._clock()), self.timeout)
        return True

    def in_progress(self, subject_id: int, size: SizeSpec) -> bool:
        raw = self._store.get(self.key(subject_id, size))
        if raw is None:
            return False

        try:
            acquired_at = float(raw)
        except ValueError:
            logger.warning("lease_value_invalid", key=self.key(subject_id, size), value=raw)
            return False

        return self._clock() - acquired_at < self.timeout

    def release(self, subject_id: int, size: SizeSpec) -> None:
        self._store.delete(self.key(subject_id, size))
