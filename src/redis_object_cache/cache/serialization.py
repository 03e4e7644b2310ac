"""
JSON payload encoding and decoding
"""

import dataclasses
import json
from typing import Any, Mapping, Optional

from ..utils.errors import DeserializationError, SerializationError, ValidationError
from ..utils.validation import KeyValidator


def _default(obj: Any) -> Any:
    """json.dumps fallback for dataclasses and objects exposing to_dict()"""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode(value: Any, key: str = None) -> str:
    """
    Serialize a value to compact JSON

    Args:
        value: JSON-compatible value, dataclass instance or object with to_dict()
        key: Key being written, for error reporting

    Returns:
        JSON text

    Raises:
        SerializationError: If the value cannot be represented as JSON
    """
    try:
        return json.dumps(value, default=_default, ensure_ascii=False,
                          separators=(',', ':'), allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(f"Cannot serialize value: {e}", key=key) from e


def decode(raw: str, key: str = None, model: Optional[type] = None) -> Any:
    """
    Deserialize a stored payload, optionally into a caller supplied shape

    ``model`` may be a dataclass (built from the stored object's fields),
    a class with a ``from_dict`` classmethod, or a plain type such as dict
    or list that the decoded value must be an instance of.

    Raises:
        DeserializationError: If the payload is not valid JSON or does not fit model
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DeserializationError(f"Stored payload is not valid JSON: {e}", key=key) from e

    if model is None:
        return data

    if dataclasses.is_dataclass(model):
        if not isinstance(data, dict):
            raise DeserializationError(
                f"Expected an object for {model.__name__}, got {type(data).__name__}", key=key
            )
        try:
            return model(**data)
        except TypeError as e:
            raise DeserializationError(f"Payload does not match {model.__name__}: {e}", key=key) from e

    from_dict = getattr(model, "from_dict", None)
    if callable(from_dict):
        try:
            return from_dict(data)
        except (TypeError, ValueError, KeyError) as e:
            raise DeserializationError(f"Payload does not match {model.__name__}: {e}", key=key) from e

    if not isinstance(data, model):
        raise DeserializationError(
            f"Expected {model.__name__}, got {type(data).__name__}", key=key
        )
    return data


def extract_id(record: Any, id_field: str = "id") -> int:
    """Read the integer ID of a collection record (mapping key or attribute)"""
    if isinstance(record, Mapping):
        if id_field not in record:
            raise ValidationError(f"Record has no '{id_field}' field", field=id_field)
        raw = record[id_field]
    else:
        if not hasattr(record, id_field):
            raise ValidationError(
                f"Record of type {type(record).__name__} has no '{id_field}' attribute",
                field=id_field
            )
        raw = getattr(record, id_field)
    return KeyValidator.validate_member_id(raw)
