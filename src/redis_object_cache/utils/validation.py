"""
Input validation and log sanitization utilities
"""

import re
from typing import Any, Optional
from .errors import ValidationError


class KeyValidator:
    """Validation of cache keys and member IDs, plus secret redaction"""

    # Redis accepts any binary string, but we keep keys printable and bounded
    MAX_KEY_LENGTH = 1024
    KEY_PATTERN = re.compile(r'^[^\s\x00-\x1f]+$')

    URL_PASSWORD_PATTERN = re.compile(r'(rediss?://[^:/@\s]*:)([^@\s]+)(@)')
    PASSWORD_FIELD_PATTERN = re.compile(r'(password[\'"]?\s*[=:]\s*[\'"]?)([^\s,\'"}]+)', re.IGNORECASE)

    @classmethod
    def validate_key_format(cls, key: str) -> bool:
        """Check that a key is a non-empty printable string"""
        if not key or not isinstance(key, str):
            return False
        if len(key) > cls.MAX_KEY_LENGTH:
            return False
        return bool(cls.KEY_PATTERN.match(key))

    @classmethod
    def validate_key(cls, key: str, field: str = "key") -> str:
        """Validate and return a cache key"""
        if not cls.validate_key_format(key):
            raise ValidationError(
                f"Invalid {field}: must be a non-empty string without whitespace, "
                f"at most {cls.MAX_KEY_LENGTH} characters",
                field=field
            )
        return key

    @classmethod
    def validate_member_id(cls, member_id: Any) -> int:
        """Validate a collection member ID and return it as int"""
        # bool is an int subclass but never a meaningful ID
        if isinstance(member_id, bool):
            raise ValidationError("Member ID must be an integer, got bool", field="id")
        if isinstance(member_id, int):
            return member_id
        if isinstance(member_id, str) and re.fullmatch(r'-?\d+', member_id):
            return int(member_id)
        raise ValidationError(
            f"Member ID must be an integer, got {type(member_id).__name__}",
            field="id"
        )

    @classmethod
    def validate_ttl(cls, ttl: Optional[int], field: str = "ttl") -> Optional[int]:
        """Validate an expiry in seconds"""
        if ttl is None:
            return None
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
            raise ValidationError(f"{field} must be a positive integer number of seconds", field=field)
        return ttl

    @classmethod
    def sanitize_log_message(cls, message: str) -> str:
        """Mask passwords embedded in Redis URLs or key=value fragments"""
        if not isinstance(message, str):
            return str(message)

        sanitized = cls.URL_PASSWORD_PATTERN.sub(r'\1****\3', message)
        sanitized = cls.PASSWORD_FIELD_PATTERN.sub(r'\1****', sanitized)
        return sanitized

    @classmethod
    def sanitize_error_message(cls, message: str) -> str:
        """
        Sanitize error messages for display to operators.

        Masks credentials and limits the length of messages coming back
        from the store.

        Args:
            message: Raw error message

        Returns:
            Sanitized error message
        """
        if not isinstance(message, str):
            message = str(message)

        sanitized = cls.sanitize_log_message(message)

        # Remove potential memory addresses
        sanitized = re.sub(r'0x[0-9a-fA-F]+', '[ADDR]', sanitized)

        max_length = 500
        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length] + '... [truncated]'

        return sanitized
