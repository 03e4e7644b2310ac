"""
Connection pooling and per-operation sessions for the Redis store
"""

import time
from contextlib import contextmanager
from typing import Iterator

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

from ..utils.errors import CacheConnectionError
from ..utils.logging_config import get_logger
from .config import StoreConfig


class IdleEvictingConnectionPool(redis.BlockingConnectionPool):
    """
    Bounded pool that re-dials connections left idle too long.

    BlockingConnectionPool already caps the number of open connections and
    waits at most ``timeout`` seconds for one to be released. On top of that
    each connection is stamped when it goes back to the pool; a connection
    that sat idle longer than ``idle_timeout`` is closed and reopened before
    it is handed out again.
    """

    def __init__(self, idle_timeout: float = 30, **kwargs):
        self.idle_timeout = idle_timeout
        super().__init__(**kwargs)

    def get_connection(self, *args, **kwargs):
        connection = super().get_connection(*args, **kwargs)
        released_at = getattr(connection, "_released_at", None)
        if released_at is not None and time.monotonic() - released_at > self.idle_timeout:
            try:
                connection.disconnect()
                connection.connect()
            except BaseException:
                # the slot goes back to the pool even when the re-dial fails
                self.release(connection)
                raise
        connection._released_at = None
        return connection

    def release(self, connection):
        connection._released_at = time.monotonic()
        super().release(connection)


class ConnectionProvider:
    """Owns the connection pool and hands out one session per operation"""

    def __init__(self,
                 config: StoreConfig = None,
                 connection_class: type = None,
                 **connection_kwargs):
        """
        Initialize the provider

        Args:
            config: Store configuration (loaded from the environment if None)
            connection_class: redis Connection subclass, mainly for tests
            **connection_kwargs: Extra arguments passed to every connection
        """
        self.config = config or StoreConfig.from_env()
        self.logger = get_logger(__name__)
        self._closed = False

        kwargs = self.config.connection_kwargs()
        kwargs.update(connection_kwargs)
        kwargs["decode_responses"] = True
        # Failures surface to the caller instead of being retried by the client
        kwargs.setdefault("retry", Retry(NoBackoff(), 0))
        if connection_class is not None:
            kwargs["connection_class"] = connection_class

        self.pool = IdleEvictingConnectionPool(
            idle_timeout=self.config.idle_timeout,
            max_connections=self.config.max_connections,
            timeout=self.config.pool_timeout,
            **kwargs
        )

        self.logger.info(
            f"Connection pool ready - {self.config.host}:{self.config.port}/{self.config.db}, "
            f"max {self.config.max_connections} connections"
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def session(self) -> Iterator[redis.Redis]:
        """
        Acquire a client bound to the pool for a single unit of work

        The client is closed on every exit path, returning any connection it
        holds to the pool.
        """
        if self._closed:
            raise CacheConnectionError("Connection provider has been closed")

        client = redis.Redis(connection_pool=self.pool)
        try:
            yield client
        finally:
            client.close()

    def ping(self) -> bool:
        """Check that the store answers"""
        try:
            with self.session() as client:
                return bool(client.ping())
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            raise CacheConnectionError(
                f"Redis at {self.config.host}:{self.config.port} is unreachable: {e}"
            ) from e

    def close(self):
        """Disconnect every pooled connection; further sessions are refused"""
        if self._closed:
            return
        self._closed = True
        self.pool.disconnect()
        self.logger.info("Connection pool closed")

    def __enter__(self) -> "ConnectionProvider":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ConnectionProvider({self.config!r}, {state})"
