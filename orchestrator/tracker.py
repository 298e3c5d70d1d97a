"""Per-row completion state read from and written to the record store.

A non-empty result cell is the only completion marker, so the result write is
always the last write for a row and is flushed before the next row starts.
"""

from __future__ import annotations

import logging
from typing import List

from core import ItemOutcome, ItemState, JobConfig, WorkItem
from storage.records import RecordStore

logger = logging.getLogger(__name__)


class RowStateTracker:
    def __init__(self, records: RecordStore, config: JobConfig) -> None:
        self._records = records
        self._config = config

    def load_items(self, collection: str) -> List[WorkItem]:
        """Rows from ``start_row`` to the last non-empty row; blank sources are skipped."""
        start = self._config.start_row
        last = self._records.last_row(collection)
        if last < start:
            return []

        columns = [self._config.source_column, self._config.extracted_column, self._config.result_column]
        rows = self._records.read_range(collection, start, last, columns)

        items: List[WorkItem] = []
        for offset, (source, extracted, result) in enumerate(rows):
            if not str(source or "").strip():
                continue
            items.append(
                WorkItem(
                    row=start + offset,
                    source_reference=source,
                    extracted_reference=extracted,
                    result_reference=result,
                    state=ItemState.from_result(result, self._config.failure_prefix),
                )
            )
        return items

    def is_processed(self, collection: str, item: WorkItem) -> bool:
        """Re-reads the result cell rather than trusting the snapshot."""
        value = self._records.read_cell(collection, item.row, self._config.result_column)
        return bool(str(value or "").strip())

    def record_extracted(self, collection: str, item: WorkItem, url: str) -> None:
        self._records.write_cell(collection, item.row, self._config.extracted_column, url)
        self._records.flush(collection)

    def record_success(self, collection: str, item: WorkItem, reference: str) -> None:
        self._records.write_cell(collection, item.row, self._config.result_column, reference)
        self._records.flush(collection)

    def record_failure(self, collection: str, item: WorkItem, reason: str) -> None:
        text = f"{self._config.failure_prefix}{reason}"
        self._records.write_cell(collection, item.row, self._config.result_column, text)
        self._records.flush(collection)

    def record_outcome(self, collection: str, item: WorkItem, outcome: ItemOutcome) -> None:
        if outcome.state == ItemState.SUCCEEDED and outcome.reference:
            self.record_success(collection, item, outcome.reference)
            return
        logger.warning(f"Row {item.row} failed: {outcome.describe_failure()}")
        self.record_failure(collection, item, outcome.describe_failure())
