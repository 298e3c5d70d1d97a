"""Tabular record store: ordered 1-based rows with letter-indexed columns."""

from __future__ import annotations

from abc import ABC, abstractmethod
import csv
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Sequence, Set, Tuple

from utils.exceptions import RecordStoreError

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """Rows and columns are 1-based. Cells are plain strings, empty when unset."""

    @abstractmethod
    def has_collection(self, name: str) -> bool:
        ...

    @abstractmethod
    def last_row(self, name: str) -> int:
        """Index of the last non-empty row, 0 for an empty collection."""

    @abstractmethod
    def read_cell(self, name: str, row: int, column: int) -> str:
        ...

    @abstractmethod
    def write_cell(self, name: str, row: int, column: int, value: str) -> None:
        ...

    @abstractmethod
    def flush(self, name: str) -> None:
        """Make every pending write durably visible."""

    def read_range(self, name: str, start_row: int, end_row: int, columns: Sequence[int]) -> List[List[str]]:
        return [[self.read_cell(name, row, column) for column in columns] for row in range(start_row, end_row + 1)]


def _cell(rows: List[List[str]], row: int, column: int) -> str:
    if row < 1 or column < 1:
        raise RecordStoreError(f"invalid cell position ({row}, {column})")
    if row > len(rows):
        return ""
    values = rows[row - 1]
    if column > len(values):
        return ""
    return str(values[column - 1] or "")


def _put(rows: List[List[str]], row: int, column: int, value: str) -> None:
    if row < 1 or column < 1:
        raise RecordStoreError(f"invalid cell position ({row}, {column})")
    while len(rows) < row:
        rows.append([])
    values = rows[row - 1]
    while len(values) < column:
        values.append("")
    values[column - 1] = str(value)


def _last_row(rows: List[List[str]]) -> int:
    for index in range(len(rows), 0, -1):
        if any(str(cell or "").strip() for cell in rows[index - 1]):
            return index
    return 0


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed store; keeps a write log for inspection."""

    def __init__(self, collections: Optional[Dict[str, List[List[str]]]] = None) -> None:
        self._collections: Dict[str, List[List[str]]] = {
            name: [list(row) for row in rows] for name, rows in (collections or {}).items()
        }
        self._lock = Lock()
        self.writes: List[Tuple[str, int, int, str]] = []
        self.flush_count = 0

    def _rows(self, name: str) -> List[List[str]]:
        rows = self._collections.get(name)
        if rows is None:
            raise RecordStoreError(f"unknown collection: {name}", collection=name)
        return rows

    def add_collection(self, name: str, rows: Optional[List[List[str]]] = None) -> None:
        with self._lock:
            self._collections[name] = [list(row) for row in (rows or [])]

    def remove_collection(self, name: str) -> None:
        with self._lock:
            self._collections.pop(name, None)

    def has_collection(self, name: str) -> bool:
        with self._lock:
            return name in self._collections

    def last_row(self, name: str) -> int:
        with self._lock:
            return _last_row(self._rows(name))

    def read_cell(self, name: str, row: int, column: int) -> str:
        with self._lock:
            return _cell(self._rows(name), row, column)

    def write_cell(self, name: str, row: int, column: int, value: str) -> None:
        with self._lock:
            _put(self._rows(name), row, column, value)
            self.writes.append((name, row, column, str(value)))

    def flush(self, name: str) -> None:
        with self._lock:
            self._rows(name)
            self.flush_count += 1

    def rows(self, name: str) -> List[List[str]]:
        with self._lock:
            return [list(row) for row in self._rows(name)]


class CsvRecordStore(RecordStore):
    """One CSV file per collection (``<directory>/<name>.csv``).

    Writes are buffered per collection until ``flush``, which rewrites the file
    through a temporary file and ``os.replace``.
    """

    def __init__(self, directory: str | Path, *, encoding: str = "utf-8") -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.encoding = encoding
        self._cache: Dict[str, List[List[str]]] = {}
        self._dirty: Set[str] = set()
        self._lock = Lock()

    def _path(self, name: str) -> Path:
        token = str(name or "").strip()
        if not token or "/" in token or "\\" in token or token.startswith("."):
            raise RecordStoreError(f"invalid collection name: {name!r}", collection=name)
        return self.directory / f"{token}.csv"

    def _rows(self, name: str) -> List[List[str]]:
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        path = self._path(name)
        if not path.exists():
            raise RecordStoreError(f"unknown collection: {name}", collection=name, path=str(path))
        try:
            with path.open("r", encoding=self.encoding, newline="") as fh:
                rows = [list(row) for row in csv.reader(fh)]
        except OSError as exc:
            raise RecordStoreError(f"failed to read collection {name}", collection=name, error=str(exc)) from exc
        self._cache[name] = rows
        return rows

    def has_collection(self, name: str) -> bool:
        with self._lock:
            if name in self._cache:
                return True
            try:
                return self._path(name).exists()
            except RecordStoreError:
                return False

    def last_row(self, name: str) -> int:
        with self._lock:
            return _last_row(self._rows(name))

    def read_cell(self, name: str, row: int, column: int) -> str:
        with self._lock:
            return _cell(self._rows(name), row, column)

    def write_cell(self, name: str, row: int, column: int, value: str) -> None:
        with self._lock:
            _put(self._rows(name), row, column, value)
            self._dirty.add(name)

    def flush(self, name: str) -> None:
        with self._lock:
            if name not in self._dirty:
                return
            rows = self._rows(name)
            path = self._path(name)
            tmp_path = path.with_suffix(".csv.tmp")
            try:
                with tmp_path.open("w", encoding=self.encoding, newline="") as fh:
                    csv.writer(fh).writerows(rows)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_path, path)
            except OSError as exc:
                raise RecordStoreError(f"failed to flush collection {name}", collection=name, error=str(exc)) from exc
            self._dirty.discard(name)
            logger.debug("Flushed collection %s (%d rows)", name, len(rows))
