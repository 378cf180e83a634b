import json
import logging

from flask import current_app
from redis import Redis, RedisError


logger = logging.getLogger(__name__)

FOREST_CACHE_KEY = "categories:forest"


class CategoryTreeCache:
    """
    Redis copy of the serialized category forest.
    Disabled unless CATEGORY_CACHE_ENABLED; a redis outage falls back to the database.
    """

    @staticmethod
    def enabled() -> bool:
        return bool(current_app.config.get("CATEGORY_CACHE_ENABLED", False))

    @staticmethod
    def client() -> Redis:
        client = current_app.extensions.get("category_cache")
        if client is None:
            client = Redis.from_url(current_app.config["REDIS_URL"], decode_responses=True)
            current_app.extensions["category_cache"] = client
        return client

    @staticmethod
    def get_forest():
        if not CategoryTreeCache.enabled():
            return None
        try:
            cached = CategoryTreeCache.client().get(FOREST_CACHE_KEY)
        except RedisError as e:
            logger.warning(f"Category cache read failed: {e}")
            return None
        return json.loads(cached) if cached else None

    @staticmethod
    def set_forest(forest):
        if not CategoryTreeCache.enabled():
            return
        ttl = int(current_app.config.get("CATEGORY_CACHE_TTL", 300))
        try:
            CategoryTreeCache.client().setex(FOREST_CACHE_KEY, ttl, json.dumps(forest))
        except RedisError as e:
            logger.warning(f"Category cache write failed: {e}")

    @staticmethod
    def invalidate():
        if not CategoryTreeCache.enabled():
            return
        try:
            CategoryTreeCache.client().delete(FOREST_CACHE_KEY)
        except RedisError as e:
            logger.warning(f"Category cache invalidation failed: {e}")
