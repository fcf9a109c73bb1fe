"""Redis connection management.

Mirrors the pattern in engine.py for PostgreSQL: when REDIS_URL is
configured we create a real connection pool; when it's None (local dev,
tests) the cache falls back to its in-memory implementation and no Redis
server is needed.

Redis only ever holds derived, recomputable data here (recommendation
lists and risk assessments).  Losing it costs a recompute, never
correctness.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from learning_engine.core.config import SETTINGS

logger = logging.getLogger(__name__)

# Every consumer of redis_pool checks for None and falls back to in-memory.
if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
        socket_timeout=1.0,  # a slow cache must not stall the engine
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis — mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured — cache uses the in-memory fallback")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        # Keep running: every cache call degrades to a miss.
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
