"""Utilities module"""

from .errors import (
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
from .validation import KeyValidator
from .logging_config import setup_logging, get_logger

__all__ = [
    "ObjectCacheError",
    "ConfigurationError",
    "ValidationError",
    "CacheConnectionError",
    "SerializationError",
    "DeserializationError",
    "StoreError",
    "ConcurrentModificationError",
    "NotFoundError",
    "KeyValidator",
    "setup_logging",
    "get_logger",
]
