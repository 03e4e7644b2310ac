"""
Status tags stored next to cached objects
"""

from enum import IntEnum
from typing import Optional, Union

from ..utils.errors import DeserializationError


class CacheStatus(IntEnum):
    """Validation state of a cached object; stored as its integer value"""

    UNCHECKED = 0
    CHECKED = 1
    DIRTY = 2
    ERROR = 3


def next_status_on_write(current: Optional[CacheStatus]) -> CacheStatus:
    """
    Status an entry gets when its payload is (over)written

    A first write starts out UNCHECKED. Any overwrite of an existing entry,
    whatever its previous status, leaves it DIRTY. Only mark_checked can
    produce CHECKED.
    """
    if current is None:
        return CacheStatus.UNCHECKED
    return CacheStatus.DIRTY


def parse_status(raw: Union[str, bytes, int, None], key: str = None) -> Optional[CacheStatus]:
    """Decode a stored status tag, None when the tag is absent"""
    if raw is None:
        return None
    try:
        return CacheStatus(int(raw))
    except (TypeError, ValueError):
        raise DeserializationError(f"Invalid status tag {raw!r}", key=key)
