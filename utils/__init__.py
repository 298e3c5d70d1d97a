"""
Utils Module
通用工具函数
"""
from .logger import setup_logger, configure_package_loggers
from .exceptions import (
    ArchiverError,
    ConfigurationError,
    StorageError,
    RecordStoreError,
    ObjectStoreError,
    DuplicateObjectError,
    SchedulerError,
    SessionError,
)

__all__ = [
    "setup_logger",
    "configure_package_loggers",
    "ArchiverError",
    "ConfigurationError",
    "StorageError",
    "RecordStoreError",
    "ObjectStoreError",
    "DuplicateObjectError",
    "SchedulerError",
    "SessionError",
]
