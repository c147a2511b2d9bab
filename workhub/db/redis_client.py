import json
import logging
from typing import Dict, Optional

import redis

from workhub.core.config import settings

logger = logging.getLogger(__name__)


def create_redis(url: str = settings.REDIS_URL) -> Optional[redis.Redis]:
    """Build a redis client, or None when no URL is configured"""
    if not url:
        return None
    return redis.Redis.from_url(url, decode_responses=True)


class ProjectStatsCache:
    """
    Read-side cache of per-project task counts.

    Only listings and detail views read through it. Close and delete always
    count tasks straight from the store.
    """

    def __init__(self, client: Optional[redis.Redis], ttl: int = settings.STATS_CACHE_TTL_SECONDS):
        self.client = client
        self.ttl = ttl

    @staticmethod
    def key(project_id: int) -> str:
        return f"project:{project_id}:stats"

    def get(self, project_id: int) -> Optional[Dict[str, int]]:
        if self.client is None:
            return None
        try:
            cached = self.client.get(self.key(project_id))
        except redis.RedisError as e:
            logger.warning("Stats cache read failed for project %s: %s", project_id, e)
            return None
        return json.loads(cached) if cached else None

    def set(self, project_id: int, stats: Dict[str, int]) -> None:
        if self.client is None:
            return
        try:
            self.client.setex(self.key(project_id), self.ttl, json.dumps(stats))
        except redis.RedisError as e:
            logger.warning("Stats cache write failed for project %s: %s", project_id, e)

    def invalidate(self, *project_ids: Optional[int]) -> None:
        keys = [self.key(pid) for pid in project_ids if pid is not None]
        if self.client is None or not keys:
            return
        try:
            self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Stats cache invalidation failed: %s", e)
