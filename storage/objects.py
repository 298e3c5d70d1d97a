"""Object store for archived artifacts."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel

from utils.exceptions import DuplicateObjectError, ObjectStoreError

logger = logging.getLogger(__name__)


class StoredObject(BaseModel):
    """Pointer to a file written into a container."""

    id: str
    name: str
    container_id: str
    reference: str
    size: int = 0


class ObjectStore(ABC):
    @abstractmethod
    def has_container(self, container_id: str) -> bool:
        ...

    @abstractmethod
    def create_file(self, data: bytes, name: str, container_id: str) -> StoredObject:
        """Write ``data`` as ``name``; the returned reference is externally dereferenceable."""


class InMemoryObjectStore(ObjectStore):
    """Tolerates duplicate names: every write gets its own id."""

    def __init__(self, containers: Optional[Iterable[str]] = None) -> None:
        self._containers = set(containers or [])
        self._objects: Dict[str, Tuple[StoredObject, bytes]] = {}
        self._lock = Lock()

    def add_container(self, container_id: str) -> None:
        with self._lock:
            self._containers.add(container_id)

    def has_container(self, container_id: str) -> bool:
        with self._lock:
            return container_id in self._containers

    def create_file(self, data: bytes, name: str, container_id: str) -> StoredObject:
        with self._lock:
            if container_id not in self._containers:
                raise ObjectStoreError(f"unknown container: {container_id}")
            object_id = uuid4().hex[:12]
            stored = StoredObject(
                id=object_id,
                name=name,
                container_id=container_id,
                reference=f"memory://{container_id}/{object_id}/{name}",
                size=len(data),
            )
            self._objects[object_id] = (stored, bytes(data))
            return stored

    def list_objects(self, container_id: Optional[str] = None) -> List[StoredObject]:
        with self._lock:
            return [
                stored.model_copy()
                for stored, _ in self._objects.values()
                if container_id is None or stored.container_id == container_id
            ]

    def read(self, reference: str) -> Optional[bytes]:
        with self._lock:
            for stored, data in self._objects.values():
                if stored.reference == reference:
                    return data
            return None


class LocalObjectStore(ObjectStore):
    """Containers are subdirectories of ``root``; duplicate names are rejected."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _container_path(self, container_id: str) -> Path:
        token = str(container_id or "").strip()
        if not token or token in {".", ".."} or "/" in token or "\\" in token:
            raise ObjectStoreError(f"invalid container id: {container_id!r}")
        return self.root / token

    def create_container(self, container_id: str) -> Path:
        path = self._container_path(container_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def has_container(self, container_id: str) -> bool:
        try:
            return self._container_path(container_id).is_dir()
        except ObjectStoreError:
            return False

    def create_file(self, data: bytes, name: str, container_id: str) -> StoredObject:
        container = self._container_path(container_id)
        if not container.is_dir():
            raise ObjectStoreError(f"unknown container: {container_id}")
        target = container / name
        try:
            with open(target, "xb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
        except FileExistsError as exc:
            raise DuplicateObjectError(f"object already exists: {name}", name=name) from exc
        except OSError as exc:
            raise ObjectStoreError(f"failed to write {name}", {"error": str(exc)}) from exc

        logger.debug("Stored %s (%d bytes) in %s", name, len(data), container_id)
        return StoredObject(
            id=f"{container_id}/{name}",
            name=name,
            container_id=container_id,
            reference=target.resolve().as_uri(),
            size=len(data),
        )
