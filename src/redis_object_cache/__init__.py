"""
Redis Object Cache

A status-tagged object cache on top of Redis: JSON objects with a
validation status, ID-keyed collections and a soft, expiring quarantine.

License: MIT
Version: 0.1.0
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .cache import ObjectCacheManager, CacheKeys, CacheStatus
from .store import StoreConfig, ConnectionProvider
from .utils.errors import (
    ObjectCacheError,
    ConfigurationError,
    ValidationError,
    CacheConnectionError,
    SerializationError,
    DeserializationError,
    StoreError,
    ConcurrentModificationError,
    NotFoundError,
)

__all__ = [
    "ObjectCacheManager",
    "CacheKeys",
    "CacheStatus",
    "StoreConfig",
    "ConnectionProvider",
    "ObjectCacheError",
    "ConfigurationError",
    "ValidationError",
    "CacheConnectionError",
    "SerializationError",
    "DeserializationError",
    "StoreError",
    "ConcurrentModificationError",
    "NotFoundError",
]
