from contextlib import contextmanager
from uuid import uuid4

import redis

from app.domain.errors import ConcurrencyConflict
from app.utils.retry import redis_retry
from app.utils.settings import LOCK_TTL_SECONDS, REDIS_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete in one Lua call, so a lock is only ever released by its owner
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


def cart_key(user_id: int) -> str:
    return f"cart:{user_id}:lock"


def order_key(order_id: int) -> str:
    return f"order:{order_id}:lock"


class LockService:
    """
    Single-writer guard per entity (cart, order).
    - acquire: SET key owner NX EX ttl
    - release: owner-checked delete via Lua
    - hold: context manager, fails fast instead of waiting
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, owner: str, ttl: int = LOCK_TTL_SECONDS) -> bool:
        logger.debug(f"Acquire lock {key} for {owner}")
        return bool(self.redis.set(name=key, value=owner, nx=True, ex=ttl))

    @redis_retry()
    def release(self, key: str, owner: str) -> bool:
        logger.debug(f"Release lock {key} for {owner}")
        return bool(self.redis.eval(_RELEASE_LUA, 1, key, owner))

    @contextmanager
    def hold(self, key: str, ttl: int = LOCK_TTL_SECONDS):
        owner = uuid4().hex
        if not self.acquire(key, owner, ttl):
            raise ConcurrencyConflict("Another request is updating this resource, please retry")
        try:
            yield owner
        finally:
            self.release(key, owner)
