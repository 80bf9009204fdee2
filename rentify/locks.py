# Per-property critical sections for booking writes.
# A keyed threading.Lock serializes writers inside one process; a Redis SET NX PX lock extends
# that across processes when Redis is enabled. Waits are bounded; a timeout surfaces as StorageError.
from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator
from uuid import uuid4

from .errors import StorageError
from .redis_client import get_redis

logger = logging.getLogger("rentify.locks")

LOCK_TTL_MS = int(os.getenv("BOOKING_LOCK_TTL_MS", "5000"))
LOCK_WAIT_MS = int(os.getenv("BOOKING_LOCK_WAIT_MS", "2000"))
_POLL_SECONDS = 0.05

_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""

# key -> [lock, number of threads holding or waiting for it]; entries go away with the last user
_local_locks: Dict[str, list] = {}
_registry_guard = threading.Lock()


def _checkout_local(key: str) -> threading.Lock:
    with _registry_guard:
        entry = _local_locks.get(key)
        if entry is None:
            entry = _local_locks[key] = [threading.Lock(), 0]
        entry[1] += 1
        return entry[0]


def _checkin_local(key: str) -> None:
    with _registry_guard:
        entry = _local_locks[key]
        entry[1] -= 1
        if entry[1] == 0:
            del _local_locks[key]


def _redis_acquire(r, key: str, token: str, ttl_ms: int) -> bool:
    """SET key token NX PX ttl; Redis errors count as acquired (fail-open)."""
    try:
        return bool(r.set(key, token, nx=True, px=ttl_ms))
    except Exception as exc:
        logger.warning("redis lock error (key=%s): %s", key, exc)
        return True


def _redis_release(r, key: str, token: str) -> None:
    # Release only if we still own the lock; otherwise it expires by TTL
    try:
        r.eval(_RELEASE_SCRIPT, 1, key, token)
    except Exception as exc:
        logger.debug("redis lock release error (key=%s): %s", key, exc)


@contextmanager
def redis_try_lock(key: str, ttl_ms: int = LOCK_TTL_MS) -> Iterator[bool]:
    """
    Best-effort distributed lock implemented with Redis SET NX PX.

    Yields True when the lock is acquired or Redis is unavailable (fail-open), False when
    another process holds it. The lock is released with a token check on exit.
    """
    r = get_redis()
    if r is None:
        yield True
        return

    token = uuid4().hex
    acquired = _redis_acquire(r, key, token, ttl_ms)
    try:
        yield acquired
    finally:
        if acquired:
            _redis_release(r, key, token)


@contextmanager
def booking_lock(property_id: int, ttl_ms: int = LOCK_TTL_MS, wait_ms: int = LOCK_WAIT_MS) -> Iterator[None]:
    """
    Serialize overlap-check-then-insert for one property.

        with booking_lock(property_id):
            with transaction(db) as gw:
                ...  # check overlap, insert

    Raises StorageError(retry_after=1) if the lock cannot be taken within `wait_ms`.
    """
    key = f"lock:booking:property:{property_id}"
    deadline = time.monotonic() + wait_ms / 1000.0

    local = _checkout_local(key)
    try:
        if not local.acquire(timeout=wait_ms / 1000.0):
            logger.warning("booking lock busy (key=%s, scope=process)", key)
            raise StorageError("Property is busy, please retry", retry_after=1)
        try:
            while True:
                with redis_try_lock(key, ttl_ms=ttl_ms) as locked:
                    if locked:
                        yield
                        return
                if time.monotonic() >= deadline:
                    logger.warning("booking lock busy (key=%s, scope=redis)", key)
                    raise StorageError("Property is busy, please retry", retry_after=1)
                time.sleep(_POLL_SECONDS)
        finally:
            local.release()
    finally:
        _checkin_local(key)
