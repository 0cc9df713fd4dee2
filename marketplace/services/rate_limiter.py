# marketplace/services/rate_limiter.py
import redis

from marketplace.utils.retry import redis_retry
from marketplace.utils.settings import REDIS_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

#LUA INCR + EXPIRE przy pierwszym trafieniu, atomowo
_FIXED_WINDOW_LUA = """
local current = redis.call('INCR', KEYS[1])
if current == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return current
"""

#bez lua dwa rownolegle requesty moglyby zrobic INCR zanim ktorykolwiek ustawi EXPIRE
#i klucz zostalby w redisie na zawsze


class RateLimiter:
    """
    -limit prob w oknie czasowym (fixed window)
    -klucz per (nazwa, identyfikator), np. checkout:<customer_id>
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def hit(self, name: str, key: str, limit: int, window_seconds: int) -> bool:
        """True gdy proba miesci sie w limicie."""
        redis_key = f"ratelimit:{name}:{key}"
        count = int(self.redis.eval(_FIXED_WINDOW_LUA, 1, redis_key, window_seconds))

        if count > limit:
            logger.warning(f"Rate limit {redis_key}: {count}/{limit} w oknie {window_seconds}s")
            return False
        return True
