# Shared Redis connection for cross-process booking locks and request rate limiting.
# Opt-in via REDIS_ENABLED; every caller treats a missing client as "no Redis" and degrades locally.
import logging
import os
import threading
from typing import Optional

_logger = logging.getLogger("rentify.redis")

_TRUTHY = {"1", "true", "t", "yes", "y", "on"}


def truthy(val: Optional[str]) -> bool:
    return val is not None and val.strip().lower() in _TRUTHY


def is_redis_enabled() -> bool:
    return truthy(os.getenv("REDIS_ENABLED", "false"))


def redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


_client = None
_attempted = False
_init_guard = threading.Lock()


def get_redis():
    """
    Process-wide Redis client, or None when Redis is disabled or unreachable.

    The first caller connects (guarded, since booking requests arrive on many threads);
    one failed attempt keeps this process on the local fallback until `reset_redis()`.
    """
    global _client, _attempted
    if not is_redis_enabled():
        return None
    if _client is not None or _attempted:
        return _client

    with _init_guard:
        if _attempted:
            return _client
        _attempted = True
        url = redis_url()
        try:
            import redis

            client = redis.Redis.from_url(
                url,
                socket_timeout=0.25,
                socket_connect_timeout=0.25,
                retry_on_timeout=False,
                health_check_interval=0,
            )
            client.ping()
        except Exception as exc:
            _logger.warning("redis.unavailable", extra={"url": url, "error": str(exc)})
            return None
        _client = client
        _logger.info("redis.connected", extra={"url": url})
        return _client


def reset_redis() -> None:
    """Forget the cached client so the next `get_redis()` reconnects (used after config changes)."""
    global _client, _attempted
    with _init_guard:
        _client = None
        _attempted = False
