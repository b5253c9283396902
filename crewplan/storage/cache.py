import json
import hashlib
import logging
from typing import Any, Dict, Optional

import redis

from crewplan.config.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class RosterCache:
    """Caches stateless roster evaluations keyed by a hash of the evaluated snapshot."""

    def __init__(self, redis_url: str = settings.redis_url, ttl_seconds: int = settings.roster_cache_ttl_seconds):
        self.redis_client = redis.from_url(redis_url, decode_responses=True)
        self.ttl_seconds = ttl_seconds

    def get(self, snapshot_hash: str) -> Optional[Dict]:
        """Retrieve a cached roster; an unreachable Redis counts as a miss."""
        try:
            cached = self.redis_client.get(f"roster:{snapshot_hash}")
        except redis.RedisError as exc:
            logger.warning(f"Roster cache read failed: {exc}")
            return None
        if cached:
            return json.loads(cached)
        return None

    def set(self, snapshot_hash: str, roster: Dict, ttl_seconds: Optional[int] = None) -> None:
        try:
            self.redis_client.setex(
                f"roster:{snapshot_hash}",
                ttl_seconds or self.ttl_seconds,
                json.dumps(roster, default=str)
            )
        except redis.RedisError as exc:
            logger.warning(f"Roster cache write failed: {exc}")

    def delete(self, snapshot_hash: str) -> None:
        try:
            self.redis_client.delete(f"roster:{snapshot_hash}")
        except redis.RedisError as exc:
            logger.warning(f"Roster cache delete failed: {exc}")

    @staticmethod
    def hash_snapshot(snapshot: Dict[str, Any]) -> str:
        """Generate a stable hash from a JSON-serializable snapshot."""
        data = json.dumps(snapshot, sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            self.redis_client.ping()
            return True
        except redis.RedisError:
            return False


_cache: Optional[RosterCache] = None


def get_cache() -> Optional[RosterCache]:
    """FastAPI dependency; None when caching is disabled."""
    global _cache
    if not settings.cache_enabled:
        return None
    if _cache is None:
        _cache = RosterCache()
    return _cache
