from core.common.errors import RateLimited
from core.common.redis_client import get_redis


def rate_limit_or_raise(*, key: str, limit: int, window_seconds: int) -> None:
    """
    Fixed window rate limit using INCR + EXPIRE.
    key should already include bucket (minute or window).
    A limit <= 0 disables the check.
    """
    if int(limit) <= 0:
        return

    r = get_redis()
    pipe = r.pipeline()
    pipe.incr(key, 1)
    pipe.ttl(key)
    count, ttl = pipe.execute()

    if ttl == -1:
        r.expire(key, window_seconds)
        ttl = window_seconds

    if int(count) > int(limit):
        retry = int(ttl if ttl and ttl > 0 else window_seconds)
        raise RateLimited(retry_after_seconds=retry)
