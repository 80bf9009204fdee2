# Fixed-window request throttling backed by Redis counters.
# Counters are per client IP and scope (rl:rentify:{scope}:{ip}); each scope has its own window cap.
# Without Redis the limiter is a no-op, so local runs and Redis outages never block requests.
import logging
import os
from typing import Callable, Dict, Literal, Optional

from fastapi import HTTPException, Request, status

from .redis_client import get_redis

logger = logging.getLogger("rentify.rate_limit")

Scope = Literal["login", "signup", "write"]

# scope -> (env var, default cap per window)
_SCOPE_LIMITS: Dict[str, tuple] = {
    "login": ("RATE_LIMIT_LOGIN_PER_WINDOW", 10),
    "signup": ("RATE_LIMIT_SIGNUP_PER_WINDOW", 5),
    "write": ("RATE_LIMIT_WRITE_PER_WINDOW", 30),
}


def _env_int(name: str, default: int) -> int:
    raw: Optional[str] = os.getenv(name)
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        logger.warning("rate_limit.bad_config", extra={"name": name, "value": raw})
        return default


def window_seconds() -> int:
    return _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)


def limit_for(scope: Scope) -> int:
    name, default = _SCOPE_LIMITS[scope]
    return _env_int(name, default)


def _client_ip(request: Request) -> str:
    # Peer address only; forwarded headers are not trusted
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(scope: Scope) -> Callable[[Request], None]:
    """
    FastAPI dependency enforcing `limit_for(scope)` requests per window per client IP.

    Over the cap the request fails with 429 and a Retry-After header carrying the seconds
    left in the current window. Redis errors let the request through.
    """
    window = window_seconds()
    limit = limit_for(scope)

    def _dependency(request: Request) -> None:
        r = get_redis()
        if r is None:
            return

        ip = _client_ip(request)
        key = f"rl:rentify:{scope}:{ip}"
        try:
            current = r.incr(key)
            if current == 1:
                r.expire(key, window)
            if current <= limit:
                return
            ttl = r.ttl(key)
        except Exception as exc:
            logger.warning("rate_limit.fail_open", extra={"scope": scope, "ip": ip, "error": str(exc)})
            return

        retry_after = ttl if isinstance(ttl, int) and ttl > 0 else window
        logger.info("rate_limit.rejected", extra={"scope": scope, "ip": ip, "count": current})
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"error": "rate_limited", "scope": scope, "limit": limit, "retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )

    return _dependency
