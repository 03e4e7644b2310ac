"""Status-tagged object cache module"""

from .manager import ObjectCacheManager
from .keys import CacheKeys
from .status import CacheStatus

__all__ = ["ObjectCacheManager", "CacheKeys", "CacheStatus"]
