"""Redis connection helpers.

Learn: Redis is optional here. It only backs the rate limiter, so the
app factory tries to connect at startup and parks the client on
app.state.redis. When Redis is down the handle stays None and every
consumer treats that as "feature off".
"""

from typing import Optional

import redis.asyncio as aioredis


async def connect_redis(url: str) -> aioredis.Redis:
    """Open a connection pool and verify it answers."""
    client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    return client


async def close_redis(client: Optional[aioredis.Redis]) -> None:
    if client is not None:
        await client.aclose()
