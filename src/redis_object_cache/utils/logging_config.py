"""
Logging configuration for the Redis object cache
"""

import logging
import logging.handlers
import os
import sys
from typing import List

from .validation import KeyValidator


class SecureLogFormatter(logging.Formatter):
    """Custom formatter that masks store credentials in log records"""

    def format(self, record: logging.LogRecord) -> str:
        # Sanitize the message before formatting
        if hasattr(record, 'msg') and isinstance(record.msg, str):
            record.msg = KeyValidator.sanitize_log_message(record.msg)

        if hasattr(record, 'args') and record.args and isinstance(record.args, tuple):
            sanitized_args = []
            for arg in record.args:
                if isinstance(arg, str):
                    sanitized_args.append(KeyValidator.sanitize_log_message(arg))
                else:
                    sanitized_args.append(arg)
            record.args = tuple(sanitized_args)

        return super().format(record)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    log_level: str = None,
    log_file: str = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Route the cache's logs to stderr and, optionally, a rotating file

    Args:
        log_level: Level name; REDIS_OBJECT_CACHE_LOG_LEVEL or INFO when omitted
        log_file: Log file path; REDIS_OBJECT_CACHE_LOG_FILE when omitted
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files kept

    Returns:
        Root logger
    """
    level_name = (log_level or os.getenv('REDIS_OBJECT_CACHE_LOG_LEVEL') or 'INFO').upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    log_file = log_file or os.getenv('REDIS_OBJECT_CACHE_LOG_FILE')

    formatter = SecureLogFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error = None
    if log_file:
        try:
            handlers.append(_rotating_file_handler(log_file, max_bytes, backup_count))
        except OSError as e:
            file_error = e

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # the client library only speaks up for warnings
    logging.getLogger('redis').setLevel(logging.WARNING)
    logging.getLogger('redis_object_cache').setLevel(level)

    if file_error is not None:
        root_logger.warning(f"Could not open log file {log_file}, logging to stderr only: {file_error}")
    return root_logger


def _rotating_file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_cache_operation(logger: logging.Logger, operation: str, cache_key: str, hit: bool = None):
    """Log cache operations at debug level"""
    if hit is not None:
        status = "HIT" if hit else "MISS"
        logger.debug(f"Cache {operation} - {cache_key} - {status}")
    else:
        logger.debug(f"Cache {operation} - {cache_key}")


def log_store_failure(logger: logging.Logger, operation: str, cache_key: str, error: Exception):
    """Log a failed store operation before it is propagated"""
    clean_error = KeyValidator.sanitize_error_message(str(error))
    logger.error(f"Cache {operation} failed - {cache_key} - {type(error).__name__}: {clean_error}")
