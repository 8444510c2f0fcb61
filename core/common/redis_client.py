from django.conf import settings

import redis


def get_redis(*, timeout_seconds: float = 1.0):
    """
    Shared client for flag caching and webhook rate limiting.
    Short socket timeouts: callers on the request path must not hang on Redis.
    """
    url = getattr(settings, "REDIS_URL", None) or "redis://localhost:6379/0"
    return redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
    )
