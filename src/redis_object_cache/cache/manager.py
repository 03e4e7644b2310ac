"""
Status-tagged object cache on top of Redis
"""

from contextlib import contextmanager
from typing import Any, Iterable, List, Optional, Tuple

import redis

from ..store.config import StoreConfig
from ..store.connection import ConnectionProvider
from ..utils.errors import (
    CacheConnectionError,
    ConcurrentModificationError,
    DeserializationError,
    NotFoundError,
    ObjectCacheError,
    StoreError,
)
from ..utils.logging_config import get_logger, log_cache_operation, log_store_failure
from ..utils.validation import KeyValidator
from .keys import CacheKeys
from .serialization import decode, encode, extract_id
from .status import CacheStatus, next_status_on_write, parse_status


class ObjectCacheManager:
    """
    Cache of JSON objects with a status tag kept next to every entry.

    Plain entries live at ``<key>`` with their tag at ``<key>/status``.
    Collections keep members at ``<group>/<id>`` and a hash at ``<group>``
    mapping each ID to its status. Every public method takes its own session
    from the pool and performs its writes as a single MULTI/EXEC.
    """

    def __init__(self,
                 config: StoreConfig = None,
                 provider: ConnectionProvider = None,
                 id_field: str = "id"):
        """
        Initialize cache manager

        Args:
            config: Store configuration (environment is used if both are None)
            provider: Existing connection provider to share
            id_field: Field or attribute holding a collection record's ID
        """
        self.logger = get_logger(__name__)
        self._owns_provider = provider is None
        self.provider = provider or ConnectionProvider(config)
        self.config = self.provider.config
        self.keys = CacheKeys(self.config.key_prefix)
        self.id_field = id_field
        self.quarantine_ttl = self.config.quarantine_ttl

        self.logger.info(
            f"Object cache initialized - prefix: {self.config.key_prefix or '(none)'}, "
            f"quarantine TTL: {self.quarantine_ttl}s"
        )

    # ------------------------------------------------------------------
    # Lifecycle

    def ping(self) -> bool:
        """Check that the backing store is reachable"""
        with self._store_call("PING", self.config.host):
            return self.provider.ping()

    def close(self):
        """Drain the connection pool if this manager created it"""
        if self._owns_provider:
            self.provider.close()

    def __enter__(self) -> "ObjectCacheManager":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def _store_call(self, operation: str, key: str):
        """Translate client library failures into cache errors, logging them once"""
        log_cache_operation(self.logger, operation, key)
        try:
            yield
        except NotFoundError:
            log_cache_operation(self.logger, operation, key, hit=False)
            raise
        except ObjectCacheError as e:
            log_store_failure(self.logger, operation, key, e)
            raise
        except UnicodeDecodeError as e:
            log_store_failure(self.logger, operation, key, e)
            raise DeserializationError(f"Stored value is not valid UTF-8: {e.reason}", key=key) from e
        except redis.exceptions.WatchError as e:
            log_store_failure(self.logger, operation, key, e)
            raise ConcurrentModificationError(
                f"{key} was modified concurrently during {operation}; nothing was written",
                key=key
            ) from e
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            log_store_failure(self.logger, operation, key, e)
            raise CacheConnectionError(
                f"Store unavailable during {operation}: {KeyValidator.sanitize_error_message(str(e))}",
                details={"key": key}
            ) from e
        except redis.exceptions.RedisError as e:
            log_store_failure(self.logger, operation, key, e)
            raise StoreError(
                f"{operation} failed: {KeyValidator.sanitize_error_message(str(e))}",
                key=key
            ) from e

    # ------------------------------------------------------------------
    # Raw strings

    def set(self, key: str, value: str):
        """Store a plain string without a status tag"""
        full_key = self.keys.key(key)
        with self._store_call("SET", full_key), self.provider.session() as client:
            client.set(full_key, value)

    def get(self, key: str) -> str:
        """
        Read a plain string

        Raises:
            NotFoundError: If the key does not exist
        """
        full_key = self.keys.key(key)
        with self._store_call("GET", full_key), self.provider.session() as client:
            value = client.get(full_key)
            if value is None:
                raise NotFoundError(f"Key {full_key} does not exist", key=full_key)
            return value

    def delete(self, key: str) -> bool:
        """Delete a plain key; returns whether it existed"""
        full_key = self.keys.key(key)
        with self._store_call("DELETE", full_key), self.provider.session() as client:
            return bool(client.delete(full_key))

    # ------------------------------------------------------------------
    # Status-tagged objects

    def put(self, key: str, value: Any) -> CacheStatus:
        """
        Store an object and update its status tag

        The tag is read under WATCH and written together with the payload,
        so a concurrent put or mark_checked on the same key makes this call
        fail instead of silently losing the status transition.

        Args:
            key: Cache key
            value: JSON-serializable value

        Returns:
            The status the entry was left in (UNCHECKED or DIRTY)

        Raises:
            SerializationError: If the value cannot be serialized
            ConcurrentModificationError: If the status tag changed mid-write
            StoreError: If the transaction fails
        """
        full_key = self.keys.key(key)
        payload = encode(value, key=full_key)
        status_key = self.keys.status(full_key)

        with self._store_call("PUT", full_key), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.watch(status_key)
                current = parse_status(pipe.get(status_key), key=status_key)
                status = next_status_on_write(current)
                pipe.multi()
                pipe.set(full_key, payload)
                pipe.set(status_key, int(status))
                pipe.execute()

        self.logger.debug(f"Stored {full_key} as {status.name}")
        return status

    def get_object(self, key: str, model: Optional[type] = None) -> Tuple[Any, CacheStatus]:
        """
        Read an object and its status tag

        Args:
            key: Cache key
            model: Optional shape to decode into (see serialization.decode)

        Returns:
            Tuple of (value, status)

        Raises:
            NotFoundError: If the entry has no status tag
            DeserializationError: If the payload does not decode into model
        """
        full_key = self.keys.key(key)
        status_key = self.keys.status(full_key)

        with self._store_call("GET_OBJECT", full_key), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.get(status_key)
                pipe.get(full_key)
                raw_status, raw_payload = pipe.execute()

            status = parse_status(raw_status, key=status_key)
            if status is None:
                raise NotFoundError(f"{full_key} has no status tag", key=full_key)
            if raw_payload is None:
                raise StoreError(f"{full_key} has a status tag but no payload", key=full_key)

            value = decode(raw_payload, key=full_key, model=model)

        log_cache_operation(self.logger, "GET_OBJECT", full_key, hit=True)
        return value, status

    def get_status(self, key: str) -> CacheStatus:
        """Status tag of a plain entry; NotFoundError if it has none"""
        full_key = self.keys.key(key)
        status_key = self.keys.status(full_key)

        with self._store_call("GET_STATUS", full_key), self.provider.session() as client:
            status = parse_status(client.get(status_key), key=status_key)
            if status is None:
                raise NotFoundError(f"{full_key} has no status tag", key=full_key)
            return status

    def delete_object(self, key: str) -> bool:
        """Remove an object and its status tag together; absent keys are fine"""
        full_key = self.keys.key(key)
        status_key = self.keys.status(full_key)

        with self._store_call("DELETE_OBJECT", full_key), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.delete(full_key)
                pipe.delete(status_key)
                removed = pipe.execute()
        return any(removed)

    def mark_checked(self, key: str):
        """
        Flag an entry as validated

        This is the only way an entry reaches CHECKED.

        Raises:
            NotFoundError: If the entry was never written through put
        """
        full_key = self.keys.key(key)
        status_key = self.keys.status(full_key)

        with self._store_call("MARK_CHECKED", full_key), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.watch(status_key)
                if not pipe.exists(status_key):
                    raise NotFoundError(f"{full_key} has no status tag", key=full_key)
                pipe.multi()
                pipe.set(status_key, int(CacheStatus.CHECKED))
                pipe.execute()

    # ------------------------------------------------------------------
    # Collections

    def put_many(self, group_key: str, records: Iterable[Any]) -> int:
        """
        Store a batch of records under a group in one transaction

        Each record must expose an integer ID through ``id_field``. Every
        record is serialized before anything is queued, so a bad record
        aborts the whole batch and nothing is written.

        Returns:
            Number of records written
        """
        full_group = self.keys.group(group_key)

        entries = []
        for record in records:
            member_id = extract_id(record, self.id_field)
            member_key = self.keys.member(full_group, member_id)
            entries.append((member_id, member_key, encode(record, key=member_key)))

        if not entries:
            return 0

        with self._store_call("PUT_MANY", full_group), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                for _, member_key, payload in entries:
                    pipe.set(member_key, payload)
                pipe.hset(full_group, mapping={
                    str(member_id): int(CacheStatus.UNCHECKED) for member_id, _, _ in entries
                })
                pipe.execute()

        self.logger.debug(f"Stored {len(entries)} records under {full_group}")
        return len(entries)

    def get_many(self, group_key: str, model: Optional[type] = None) -> List[Any]:
        """
        Read every record of a group, ordered by ascending ID

        Raises:
            StoreError: If a listed member has no payload
        """
        full_group = self.keys.group(group_key)

        with self._store_call("GET_MANY", full_group), self.provider.session() as client:
            member_ids = self._parse_ids(client.hkeys(full_group), full_group)
            if not member_ids:
                return []

            member_keys = [self.keys.member(full_group, member_id) for member_id in member_ids]
            payloads = client.mget(member_keys)

            records = []
            for member_key, raw in zip(member_keys, payloads):
                if raw is None:
                    raise StoreError(
                        f"{member_key} is listed in {full_group} but has no payload",
                        key=member_key
                    )
                records.append(decode(raw, key=member_key, model=model))

        log_cache_operation(self.logger, "GET_MANY", full_group, hit=True)
        return records

    def get_one(self, group_key: str, member_id: Any, model: Optional[type] = None) -> Any:
        """Read one record of a group; NotFoundError if absent"""
        full_group = self.keys.group(group_key)
        member_key = self.keys.member(full_group, member_id)

        with self._store_call("GET_ONE", member_key), self.provider.session() as client:
            raw = client.get(member_key)
            if raw is None:
                raise NotFoundError(f"{member_key} does not exist", key=member_key)
            return decode(raw, key=member_key, model=model)

    def get_member_status(self, group_key: str, member_id: Any) -> CacheStatus:
        """
        Status of one member from the group hash

        Raises:
            NotFoundError: If the group has no field for this ID
        """
        full_group = self.keys.group(group_key)
        member_id = KeyValidator.validate_member_id(member_id)

        with self._store_call("GET_STATUS", full_group), self.provider.session() as client:
            status = parse_status(client.hget(full_group, str(member_id)), key=full_group)
            if status is None:
                raise NotFoundError(
                    f"{full_group} has no status for member {member_id}",
                    key=full_group, details={"id": member_id}
                )
            return status

    def mark_member_checked(self, group_key: str, member_id: Any):
        """Set one member's status field to CHECKED; NotFoundError if absent"""
        full_group = self.keys.group(group_key)
        member_id = KeyValidator.validate_member_id(member_id)

        with self._store_call("MARK_CHECKED", full_group), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.watch(full_group)
                if not pipe.hexists(full_group, str(member_id)):
                    raise NotFoundError(
                        f"{full_group} has no status for member {member_id}",
                        key=full_group, details={"id": member_id}
                    )
                pipe.multi()
                pipe.hset(full_group, str(member_id), int(CacheStatus.CHECKED))
                pipe.execute()

    def delete_one(self, group_key: str, member_id: Any) -> bool:
        """Remove one member and its status field; returns whether anything existed"""
        full_group = self.keys.group(group_key)
        member_id = KeyValidator.validate_member_id(member_id)
        member_key = self.keys.member(full_group, member_id)

        with self._store_call("DELETE_ONE", member_key), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.delete(member_key)
                pipe.hdel(full_group, str(member_id))
                removed = pipe.execute()
        return any(removed)

    def delete_all(self, group_key: str) -> int:
        """
        Remove every member of a group and the group hash

        Returns:
            Number of members listed in the hash before removal
        """
        full_group = self.keys.group(group_key)

        with self._store_call("DELETE_ALL", full_group), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.watch(full_group)
                member_ids = self._parse_ids(pipe.hkeys(full_group), full_group)
                pipe.multi()
                for member_id in member_ids:
                    pipe.delete(self.keys.member(full_group, member_id))
                pipe.delete(full_group)
                pipe.execute()

        self.logger.debug(f"Deleted {len(member_ids)} members of {full_group}")
        return len(member_ids)

    # ------------------------------------------------------------------
    # Quarantine

    def quarantine(self, group_key: str, member_id: Any, ttl: int = None):
        """
        Move a member out of the live group into the tmp/ namespace

        In one transaction the member key is renamed to ``tmp/<group>/<id>``,
        the ID is added to the set ``tmp/<group>``, both get an expiry and the
        ID's field is dropped from the live status hash.

        Args:
            group_key: Group the member belongs to
            member_id: Member ID
            ttl: Seconds before the store reclaims the quarantined data

        Raises:
            NotFoundError: If the member key does not exist
        """
        ttl = KeyValidator.validate_ttl(ttl) or self.quarantine_ttl
        full_group = self.keys.group(group_key)
        member_id = KeyValidator.validate_member_id(member_id)
        member_key = self.keys.member(full_group, member_id)
        temp_key = self.keys.temp(member_key)
        temp_set = self.keys.temp_set(full_group)

        with self._store_call("QUARANTINE", member_key), self.provider.session() as client:
            with client.pipeline(transaction=True) as pipe:
                pipe.watch(member_key)
                if not pipe.exists(member_key):
                    raise NotFoundError(f"{member_key} does not exist", key=member_key)
                pipe.multi()
                pipe.rename(member_key, temp_key)
                pipe.sadd(temp_set, str(member_id))
                pipe.expire(temp_key, ttl)
                pipe.expire(temp_set, ttl)
                pipe.hdel(full_group, str(member_id))
                try:
                    pipe.execute()
                except redis.exceptions.WatchError as e:
                    # WATCH also fires when the member vanished before EXEC
                    if not client.exists(member_key):
                        raise NotFoundError(f"{member_key} does not exist", key=member_key) from e
                    raise

        self.logger.info(f"Quarantined {member_key} as {temp_key} for {ttl}s")

    def get_quarantined(self, group_key: str, member_id: Any, model: Optional[type] = None) -> Any:
        """Read a quarantined member; NotFoundError once it has expired"""
        full_group = self.keys.group(group_key)
        temp_key = self.keys.temp_member(full_group, member_id)

        with self._store_call("GET_QUARANTINED", temp_key), self.provider.session() as client:
            raw = client.get(temp_key)
            if raw is None:
                raise NotFoundError(f"{temp_key} does not exist", key=temp_key)
            return decode(raw, key=temp_key, model=model)

    def quarantined_ids(self, group_key: str) -> List[int]:
        """IDs currently held in the group's quarantine set, ascending"""
        full_group = self.keys.group(group_key)
        temp_set = self.keys.temp_set(full_group)

        with self._store_call("QUARANTINED_IDS", temp_set), self.provider.session() as client:
            return self._parse_ids(client.smembers(temp_set), temp_set)

    @staticmethod
    def _parse_ids(raw_ids: Iterable[str], key: str) -> List[int]:
        """Stored ID strings to sorted ints"""
        member_ids = []
        for raw in raw_ids:
            try:
                member_ids.append(int(raw))
            except (TypeError, ValueError):
                raise StoreError(f"{key} holds a non-integer member ID {raw!r}", key=key)
        return sorted(member_ids)
