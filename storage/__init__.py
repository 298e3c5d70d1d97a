"""
Storage Module
存储模块 - 记录表、对象存储、属性存储
"""
from .properties import (
    PropertyStore,
    MemoryPropertyStore,
    JsonFilePropertyStore,
)
from .records import (
    RecordStore,
    InMemoryRecordStore,
    CsvRecordStore,
)
from .objects import (
    ObjectStore,
    StoredObject,
    InMemoryObjectStore,
    LocalObjectStore,
)
from .artifacts import artifact_filename, persist_artifact, try_persist

__all__ = [
    # Properties
    "PropertyStore",
    "MemoryPropertyStore",
    "JsonFilePropertyStore",
    # Records
    "RecordStore",
    "InMemoryRecordStore",
    "CsvRecordStore",
    # Objects
    "ObjectStore",
    "StoredObject",
    "InMemoryObjectStore",
    "LocalObjectStore",
    # Persistence
    "artifact_filename",
    "persist_artifact",
    "try_persist",
]
