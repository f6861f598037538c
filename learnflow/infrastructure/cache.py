import json
import redis
import structlog
from typing import Optional, Any
from ..config import settings

logger = structlog.get_logger()

_redis_client: Optional[redis.Redis] = None

def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True
        )
    return _redis_client

def get_cache(key: str) -> Optional[Any]:
    """Получить значение из кэша"""
    try:
        client = get_redis()
        value = client.get(key)
        if value:
            return json.loads(value)
    except Exception as e:
        # Redis недоступен - работаем как при промахе
        logger.warning("cache_unavailable", op="get", key=key, error=str(e))
    return None

def set_cache(key: str, value: Any, ttl: int = None) -> bool:
    """Сохранить значение в кэш"""
    try:
        client = get_redis()
        ttl = ttl or settings.CACHE_TTL
        client.setex(key, ttl, json.dumps(value, ensure_ascii=False))
        return True
    except Exception as e:
        logger.warning("cache_unavailable", op="set", key=key, error=str(e))
        return False

def delete_cache(key: str) -> bool:
    """Удалить значение из кэша"""
    try:
        client = get_redis()
        client.delete(key)
        return True
    except Exception as e:
        logger.warning("cache_unavailable", op="delete", key=key, error=str(e))
        return False
