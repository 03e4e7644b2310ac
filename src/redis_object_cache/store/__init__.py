"""Backing store connection module"""

from .config import StoreConfig
from .connection import ConnectionProvider, IdleEvictingConnectionPool

__all__ = ["StoreConfig", "ConnectionProvider", "IdleEvictingConnectionPool"]
