"""Redis pool and the fixed-window counters behind request rate limiting."""

import redis.asyncio as redis

KEY_PREFIX = "vx"

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client. Raises RuntimeError before ``init_redis``."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def window_key(scope: str, subject: str, window: int) -> str:
    return f"{KEY_PREFIX}:{scope}:{subject}:{window}"


async def hit_window(key: str, ttl_seconds: int) -> int:
    """Count one hit against ``key`` and return the running total for its window.

    The expiry is re-armed on every hit, so a key outlives its window by at
    most ``ttl_seconds``.
    """
    pipe = get_redis().pipeline()
    pipe.incr(key)
    pipe.expire(key, ttl_seconds)
    count, _ = await pipe.execute()
    return int(count)
