# backend/serenibook/redis_client.py

from redis import Redis

from .config import settings

redis_client = Redis.from_url(
    settings.redis_url,
    socket_timeout=settings.redis_socket_timeout,
    socket_connect_timeout=settings.redis_socket_timeout,
)


# Dependency for FastAPI (overridden in tests)
def get_redis() -> Redis | None:
    return redis_client
