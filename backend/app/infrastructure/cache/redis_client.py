from functools import lru_cache

from redis import ConnectionPool, Redis
from redis.exceptions import RedisError

from app.config import settings


@lru_cache(maxsize=4)
def _connection_pool(redis_url: str) -> ConnectionPool:
    return ConnectionPool.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
        socket_timeout=settings.redis_socket_timeout_seconds,
    )


def get_redis_client() -> Redis:
    """Client on a shared pool; short timeouts keep locks and events from stalling ledger writes."""
    return Redis(connection_pool=_connection_pool(settings.redis_url))


def redis_is_available(client: Redis) -> bool:
    try:
        return bool(client.ping())
    except RedisError:
        return False
