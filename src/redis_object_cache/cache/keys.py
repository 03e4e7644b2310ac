"""
Derived key naming for status tags, collection members and quarantine
"""

from typing import Any

from ..utils.validation import KeyValidator

STATUS_SUFFIX = "/status"
TEMP_PREFIX = "tmp/"


class CacheKeys:
    """Builds every key the cache writes, optionally under a common prefix"""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def key(self, key: str) -> str:
        """Full key for a caller supplied key"""
        return self.prefix + KeyValidator.validate_key(key)

    def group(self, group_key: str) -> str:
        """Full key of a collection's status hash"""
        return self.prefix + KeyValidator.validate_key(group_key, field="group_key")

    @staticmethod
    def status(full_key: str) -> str:
        """Status tag key: <key>/status"""
        return full_key + STATUS_SUFFIX

    @staticmethod
    def member(full_group_key: str, member_id: Any) -> str:
        """Member payload key: <group_key>/<id>"""
        return f"{full_group_key}/{KeyValidator.validate_member_id(member_id)}"

    def temp(self, full_key: str) -> str:
        """Quarantine key: tmp/<key>, with the prefix kept in front"""
        return self.prefix + TEMP_PREFIX + full_key[len(self.prefix):]

    def temp_member(self, full_group_key: str, member_id: Any) -> str:
        """Quarantined member key: tmp/<group_key>/<id>"""
        return self.temp(self.member(full_group_key, member_id))

    def temp_set(self, full_group_key: str) -> str:
        """Set of quarantined IDs: tmp/<group_key>"""
        return self.temp(full_group_key)
