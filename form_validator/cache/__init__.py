"""
Key-value cache package: Redis client with an in-process fallback store.
"""

from form_validator.cache.client import RedisCache, create_cache
from form_validator.cache.exceptions import CacheConnectionError, CacheError, CacheOperationError
from form_validator.cache.fallback import InMemoryStore

__all__ = [
    'RedisCache',
    'create_cache',
    'InMemoryStore',
    'CacheError',
    'CacheConnectionError',
    'CacheOperationError',
]
