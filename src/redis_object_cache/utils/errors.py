"""
Custom exceptions for the Redis object cache
"""


class ObjectCacheError(Exception):
    """Base exception for the object cache"""

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.error_code = error_code or "UNKNOWN_ERROR"
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization"""
        return {
            "error": {
                "code": self.error_code,
                "message": str(self),
                "details": self.details
            }
        }


class ConfigurationError(ObjectCacheError):
    """Configuration-related errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class ValidationError(ObjectCacheError):
    """Invalid keys, IDs or records passed by the caller"""

    def __init__(self, message: str, field: str = None, details: dict = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message, "VALIDATION_ERROR", error_details)


class CacheConnectionError(ObjectCacheError):
    """Pool exhaustion, session acquisition or network failures"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "CONNECTION_ERROR", details)


class SerializationError(ObjectCacheError):
    """A value could not be encoded for storage"""

    def __init__(self, message: str, key: str = None, details: dict = None):
        error_details = details or {}
        if key:
            error_details["key"] = key
        super().__init__(message, "SERIALIZATION_ERROR", error_details)


class DeserializationError(ObjectCacheError):
    """A stored payload could not be decoded into the requested shape"""

    def __init__(self, message: str, key: str = None, details: dict = None):
        error_details = details or {}
        if key:
            error_details["key"] = key
        super().__init__(message, "DESERIALIZATION_ERROR", error_details)


class StoreError(ObjectCacheError):
    """A command or transaction failed inside the store"""

    def __init__(self, message: str, key: str = None, details: dict = None,
                 error_code: str = "STORE_ERROR"):
        error_details = details or {}
        if key:
            error_details["key"] = key
        super().__init__(message, error_code, error_details)


class ConcurrentModificationError(StoreError):
    """A watched key changed between the read and the transactional write"""

    def __init__(self, message: str, key: str = None, details: dict = None):
        super().__init__(message, key, details, error_code="CONCURRENT_MODIFICATION")


class NotFoundError(ObjectCacheError):
    """An expected key, status tag or hash field is absent"""

    def __init__(self, message: str, key: str = None, details: dict = None):
        error_details = details or {}
        if key:
            error_details["key"] = key
        super().__init__(message, "NOT_FOUND", error_details)
