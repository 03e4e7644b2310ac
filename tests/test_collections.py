"""
Test cases for ID-keyed collections and quarantine
"""

import time
from dataclasses import dataclass
from unittest.mock import patch

import fakeredis
import pytest
import redis

from redis_object_cache.cache.manager import ObjectCacheManager
from redis_object_cache.cache.status import CacheStatus
from redis_object_cache.utils.errors import (
    ConcurrentModificationError,
    NotFoundError,
    SerializationError,
    StoreError,
    ValidationError,
)
from redis_object_cache.store.config import StoreConfig
from redis_object_cache.store.connection import ConnectionProvider


@dataclass
class Student:
    id: int
    name: str


class TestPutMany:
    """Batch writes"""

    def test_put_many_get_many(self, cache):
        records = [{"id": 3, "name": "C"}, {"id": 1, "name": "A"}, {"id": 2, "name": "B"}]

        assert cache.put_many("class/101", records) == 3

        result = cache.get_many("class/101")
        assert sorted(result, key=lambda r: r["id"]) == sorted(records, key=lambda r: r["id"])

    def test_get_many_ordered_by_id(self, cache):
        cache.put_many("class/101", [{"id": 10}, {"id": 2}, {"id": 7}])

        assert [r["id"] for r in cache.get_many("class/101")] == [2, 7, 10]

    def test_key_layout(self, cache, raw_redis):
        cache.put_many("class/101", [{"id": 1, "name": "A"}])

        assert raw_redis.get("class/101/1") == '{"id":1,"name":"A"}'
        assert raw_redis.hgetall("class/101") == {"1": "0"}

    def test_every_member_starts_unchecked(self, cache):
        cache.put_many("g", [{"id": 1}, {"id": 2}])

        assert cache.get_member_status("g", 1) == CacheStatus.UNCHECKED
        assert cache.get_member_status("g", 2) == CacheStatus.UNCHECKED

    def test_dataclass_records(self, cache):
        cache.put_many("g", [Student(id=1, name="Ming"), Student(id=2, name="Li")])

        assert cache.get_many("g", model=Student) == [Student(1, "Ming"), Student(2, "Li")]
        assert cache.get_one("g", 2, model=Student) == Student(2, "Li")

    def test_bad_record_aborts_batch(self, cache, raw_redis):
        records = [{"id": 1, "name": "A"}, {"id": 2, "blob": object()}]

        with pytest.raises(SerializationError):
            cache.put_many("g", records)

        assert raw_redis.exists("g", "g/1", "g/2") == 0

    def test_record_without_id_aborts_batch(self, cache, raw_redis):
        with pytest.raises(ValidationError):
            cache.put_many("g", [{"id": 1}, {"name": "no id"}])

        assert raw_redis.exists("g", "g/1") == 0

    def test_empty_batch(self, cache, raw_redis):
        assert cache.put_many("g", []) == 0
        assert raw_redis.exists("g") == 0

    def test_custom_id_field(self, provider):
        cache = ObjectCacheManager(provider=provider, id_field="Id")
        cache.put_many("student", [{"Id": 1, "Name": "Ming"}])

        assert cache.get_one("student", 1) == {"Id": 1, "Name": "Ming"}


class TestGroupReads:
    """Single member and whole-group reads"""

    def test_get_many_empty_group(self, cache):
        assert cache.get_many("nothing-here") == []

    def test_get_many_missing_member_payload(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}, {"id": 2}])
        raw_redis.delete("g/2")

        with pytest.raises(StoreError):
            cache.get_many("g")

    def test_get_one_missing(self, cache):
        with pytest.raises(NotFoundError):
            cache.get_one("g", 5)

    def test_get_member_status_absent_field(self, cache):
        cache.put_many("g", [{"id": 1}])

        with pytest.raises(NotFoundError):
            cache.get_member_status("g", 2)

    def test_mark_member_checked(self, cache):
        cache.put_many("g", [{"id": 1}, {"id": 2}])

        cache.mark_member_checked("g", 1)

        assert cache.get_member_status("g", 1) == CacheStatus.CHECKED
        assert cache.get_member_status("g", 2) == CacheStatus.UNCHECKED

    def test_mark_member_checked_absent(self, cache):
        with pytest.raises(NotFoundError):
            cache.mark_member_checked("g", 9)

    def test_string_ids_accepted(self, cache):
        cache.put_many("g", [{"id": "4"}])

        assert cache.get_member_status("g", "4") == CacheStatus.UNCHECKED

    def test_non_integer_id_rejected(self, cache):
        with pytest.raises(ValidationError):
            cache.get_one("g", "abc")
        with pytest.raises(ValidationError):
            cache.get_one("g", True)


class TestGroupDeletes:
    """delete_one and delete_all"""

    def test_delete_one_leaves_others(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}, {"id": 2}, {"id": 3}])

        assert cache.delete_one("g", 2) is True

        with pytest.raises(NotFoundError):
            cache.get_member_status("g", 2)
        assert raw_redis.exists("g/2") == 0
        assert cache.get_member_status("g", 1) == CacheStatus.UNCHECKED
        assert cache.get_member_status("g", 3) == CacheStatus.UNCHECKED

    def test_delete_one_missing(self, cache):
        assert cache.delete_one("g", 42) is False

    def test_delete_all(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}, {"id": 2}])

        assert cache.delete_all("g") == 2

        assert raw_redis.exists("g", "g/1", "g/2") == 0
        assert cache.get_many("g") == []

    def test_delete_all_empty_group(self, cache):
        assert cache.delete_all("g") == 0


class TestQuarantine:
    """Soft removal into the tmp/ namespace"""

    def test_quarantine_moves_member(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}])

        cache.quarantine("g", 1)

        with pytest.raises(NotFoundError):
            cache.get_member_status("g", 1)
        assert raw_redis.exists("g/1") == 0
        assert cache.get_quarantined("g", 1) == {"id": 1, "name": "A"}
        assert cache.quarantined_ids("g") == [1]
        assert [r["id"] for r in cache.get_many("g")] == [2]

    def test_quarantine_sets_expiry(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}])

        cache.quarantine("g", 1, ttl=30)

        assert 0 < raw_redis.ttl("tmp/g/1") <= 30
        assert 0 < raw_redis.ttl("tmp/g") <= 30

    def test_default_ttl_from_config(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}])

        cache.quarantine("g", 1)

        assert 0 < raw_redis.ttl("tmp/g/1") <= cache.quarantine_ttl

    def test_quarantined_member_expires(self, cache):
        cache.put_many("g", [{"id": 1}])

        cache.quarantine("g", 1, ttl=1)
        time.sleep(1.2)

        with pytest.raises(NotFoundError):
            cache.get_quarantined("g", 1)
        assert cache.quarantined_ids("g") == []

    def test_quarantine_missing_member(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}])

        with pytest.raises(NotFoundError):
            cache.quarantine("g", 7)

        assert raw_redis.exists("tmp/g") == 0
        assert cache.get_member_status("g", 1) == CacheStatus.UNCHECKED

    def test_member_removed_before_exec(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}])
        original_multi = redis.client.Pipeline.multi

        def delete_then_multi(pipe):
            raw_redis.delete("g/1")
            return original_multi(pipe)

        with patch.object(redis.client.Pipeline, "multi", autospec=True, side_effect=delete_then_multi):
            with pytest.raises(NotFoundError):
                cache.quarantine("g", 1)

        assert raw_redis.exists("tmp/g", "tmp/g/1") == 0
        assert cache.get_member_status("g", 1) == CacheStatus.UNCHECKED

    def test_member_changed_before_exec(self, cache, raw_redis):
        cache.put_many("g", [{"id": 1}])
        original_multi = redis.client.Pipeline.multi

        def rewrite_then_multi(pipe):
            raw_redis.set("g/1", '{"id":1,"edited":true}')
            return original_multi(pipe)

        with patch.object(redis.client.Pipeline, "multi", autospec=True, side_effect=rewrite_then_multi):
            with pytest.raises(ConcurrentModificationError):
                cache.quarantine("g", 1)

        assert raw_redis.exists("tmp/g/1") == 0
        assert cache.get_one("g", 1) == {"id": 1, "edited": True}

    def test_invalid_ttl(self, cache):
        cache.put_many("g", [{"id": 1}])

        with pytest.raises(ValidationError):
            cache.quarantine("g", 1, ttl=0)


class TestClassScenario:
    """End-to-end walk through a class roster"""

    def test_roster_lifecycle(self, cache):
        cache.put_many("class/101", [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}])
        assert cache.get_many("class/101") == [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}]

        cache.delete_one("class/101", 2)
        assert cache.get_many("class/101") == [{"id": 1, "name": "A"}]

        cache.quarantine("class/101", 1)
        assert cache.get_many("class/101") == []
        assert cache.get_quarantined("class/101", 1) == {"id": 1, "name": "A"}


class TestKeyPrefix:
    """Configured prefix applies to every derived key"""

    def test_prefixed_layout(self, fake_server, raw_redis):
        config = StoreConfig(key_prefix="app:")
        provider = ConnectionProvider(
            config, connection_class=fakeredis.FakeConnection, server=fake_server
        )

        with ObjectCacheManager(provider=provider) as cache:
            cache.put("k", {"v": 1})
            cache.put_many("g", [{"id": 1}])
            cache.quarantine("g", 1)

        assert raw_redis.get("app:k/status") == "0"
        assert raw_redis.exists("app:tmp/g/1") == 1
        assert raw_redis.smembers("app:tmp/g") == {"1"}
        provider.close()
