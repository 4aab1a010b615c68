"""
Caching utilities for list and dashboard queries.

Cached payloads are keyed on the change version of every collection they read,
so a committed write to any of those collections makes the old entries unreachable
instead of requiring pattern deletes.
"""
from django.core.cache import cache
import hashlib
import logging
import time

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 180  # 3 minutes
CUSTOMER_LIST_CACHE_TTL = 300  # 5 minutes
DASHBOARD_CACHE_TTL = 300  # 5 minutes

VERSION_KEY_PREFIX = 'collection_version:'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def get_collection_version(collection):
    """Current change version of a collection (0 when never written)"""
    return cache.get(f"{VERSION_KEY_PREFIX}{collection}", 0)


def get_collection_versions(collections):
    keys = {f"{VERSION_KEY_PREFIX}{name}": name for name in collections}
    found = cache.get_many(list(keys))
    return {name: found.get(key, 0) for key, name in keys.items()}


def bump_collection_version(collection):
    """
    Move a collection's version forward.

    Versions are millisecond timestamps forced to be strictly increasing, so a
    version lost to eviction never comes back lower than one a client has seen.
    """
    key = f"{VERSION_KEY_PREFIX}{collection}"
    current = cache.get(key, 0)
    new_version = max(int(time.time() * 1000), current + 1)
    cache.set(key, new_version, None)
    logger.debug(f"Bumped version of {collection} to {new_version}")
    return new_version


def versioned_cache_key(prefix, collections, **params):
    """Cache key that changes whenever any of the given collections changes"""
    versions = get_collection_versions(collections)
    return make_cache_key(prefix, tuple(sorted(versions.items())), **params)


def get_cached(cache_key):
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        logger.debug(f"Cache HIT: {cache_key}")
    else:
        logger.debug(f"Cache MISS: {cache_key}")
    return cached_data


def set_cached(cache_key, data, ttl):
    cache.set(cache_key, data, ttl)
