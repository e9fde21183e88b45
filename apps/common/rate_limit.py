from __future__ import annotations

from dataclasses import dataclass
from time import time

from django.core.cache import caches


@dataclass
class LimitResult:
    allowed: bool
    remaining: int
    retry_after: int


def rate_limit(namespace: str, ident: str, limit: int, window_seconds: int) -> LimitResult:
    """Fixed-window counter; one cache bucket per `window_seconds`.

    Used on the anonymous endpoints (waiter calls, lead capture, payment
    retries and status polls) keyed by session or order token.
    """
    cache = caches["default"]
    now = int(time())
    bucket = now // window_seconds
    key = f"rl:{namespace}:{ident}:{bucket}"

    if cache.get(key, 0) >= limit:
        return LimitResult(False, 0, (bucket + 1) * window_seconds - now)
    cache.add(key, 0, timeout=window_seconds)
    used = cache.incr(key)
    return LimitResult(True, max(0, limit - used), 0)


def session_ident(request) -> str:
    """Session key of an anonymous diner, creating the session on first use."""
    if not request.session.session_key:
        request.session.create()
    return request.session.session_key
