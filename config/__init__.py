"""
Configuration Management Module
统一配置管理
"""
from .settings import (
    ArchiverSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "ArchiverSettings",
    "LoggingSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
