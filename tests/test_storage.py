from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from storage import (
    CsvRecordStore,
    InMemoryObjectStore,
    InMemoryRecordStore,
    JsonFilePropertyStore,
    LocalObjectStore,
    MemoryPropertyStore,
    artifact_filename,
    persist_artifact,
    try_persist,
)
from utils import DuplicateObjectError, ObjectStoreError, RecordStoreError

NOW = datetime(2026, 3, 1, 9, 30, 15)


class TestArtifactFilename:
    def test_uses_last_segment_without_query(self) -> None:
        assert artifact_filename("https://a.co/papers/x.pdf?token=abc#p2", ".pdf", now=NOW) == "x.pdf"

    def test_replaces_other_extension_and_normalizes_case(self) -> None:
        assert artifact_filename("https://a.co/report.PDF", ".pdf", now=NOW) == "report.pdf"
        assert artifact_filename("https://a.co/scan.php", ".pdf", now=NOW) == "scan.pdf"

    def test_sanitizes_unsafe_characters(self) -> None:
        assert artifact_filename("https://a.co/Annual%20Report%20(final).pdf", ".pdf", now=NOW) == "Annual_Report_final.pdf"

    def test_multi_dot_names_keep_inner_dots_and_swap_last_suffix(self) -> None:
        assert artifact_filename("https://a.co/dl/x.tar.gz", ".pdf", now=NOW) == "x.tar.pdf"
        assert artifact_filename("https://a.co/report.v2.final.pdf", ".pdf", now=NOW) == "report.v2.final.pdf"
        assert artifact_filename("https://a.co/.hidden", ".pdf", now=NOW) == "artifact_20260301_093015.pdf"

    def test_falls_back_to_timestamp_when_segment_unusable(self) -> None:
        assert artifact_filename("https://a.co/", ".pdf", now=NOW) == "artifact_20260301_093015.pdf"
        assert artifact_filename("https://a.co/download", ".pdf", now=NOW) == "artifact_20260301_093015.pdf"
        assert artifact_filename("", ".pdf", now=NOW) == "artifact_20260301_093015.pdf"


class TestPersistence:
    def test_in_memory_store_tolerates_duplicate_names(self, pdf_bytes) -> None:
        store = InMemoryObjectStore(["archive"])

        first = persist_artifact(pdf_bytes, "https://a.co/x.pdf", "archive", store=store)
        second = persist_artifact(pdf_bytes, "https://b.co/x.pdf", "archive", store=store)

        assert first and second and first != second
        assert [obj.name for obj in store.list_objects("archive")] == ["x.pdf", "x.pdf"]
        assert store.read(first) == pdf_bytes

    def test_local_store_gets_numeric_suffix_on_collision(self, tmp_path: Path, pdf_bytes) -> None:
        store = LocalObjectStore(tmp_path)
        store.create_container("archive")

        refs = [persist_artifact(pdf_bytes, "https://a.co/x.pdf", "archive", store=store) for _ in range(3)]

        assert [Path(ref).name for ref in refs] == ["x.pdf", "x-1.pdf", "x-2.pdf"]
        assert all(ref.startswith("file://") for ref in refs)
        assert (tmp_path / "archive" / "x-2.pdf").read_bytes() == pdf_bytes

    def test_store_error_becomes_failed_result(self, pdf_bytes) -> None:
        store = InMemoryObjectStore([])

        assert persist_artifact(pdf_bytes, "https://a.co/x.pdf", "missing", store=store) is None
        result = try_persist(pdf_bytes, "https://a.co/x.pdf", "missing", store=store)
        assert result.ok is False
        assert "unknown container" in result.reason

    def test_local_store_rejects_duplicates_directly(self, tmp_path: Path) -> None:
        store = LocalObjectStore(tmp_path)
        store.create_container("box")
        store.create_file(b"1", "a.pdf", "box")

        with pytest.raises(DuplicateObjectError):
            store.create_file(b"2", "a.pdf", "box")
        with pytest.raises(ObjectStoreError):
            store.create_file(b"3", "a.pdf", "nope")
        assert store.has_container("box") is True
        assert store.has_container("../etc") is False


class TestRecordStores:
    def test_in_memory_read_write_and_last_row(self) -> None:
        store = InMemoryRecordStore({"papers": [["url", "", "result"], ["https://a.co/x.pdf"], [], [""]]})

        assert store.last_row("papers") == 2
        assert store.read_cell("papers", 2, 1) == "https://a.co/x.pdf"
        assert store.read_cell("papers", 2, 3) == ""
        assert store.read_cell("papers", 9, 9) == ""

        store.write_cell("papers", 5, 3, "done")
        store.flush("papers")
        assert store.last_row("papers") == 5
        assert store.writes == [("papers", 5, 3, "done")]
        assert store.read_range("papers", 2, 3, [1, 3]) == [["https://a.co/x.pdf", ""], ["", ""]]

    def test_in_memory_unknown_collection_raises(self) -> None:
        store = InMemoryRecordStore()
        assert store.has_collection("ghost") is False
        with pytest.raises(RecordStoreError):
            store.read_cell("ghost", 1, 1)

    def test_csv_store_persists_on_flush(self, tmp_path: Path) -> None:
        (tmp_path / "papers.csv").write_text("source,extracted,result\nhttps://a.co/x.pdf,,\n", encoding="utf-8")
        store = CsvRecordStore(tmp_path)

        assert store.has_collection("papers") is True
        assert store.has_collection("../papers") is False
        store.write_cell("papers", 2, 3, "file:///archive/x.pdf")
        assert "file:///archive/x.pdf" not in (tmp_path / "papers.csv").read_text(encoding="utf-8")

        store.flush("papers")
        reopened = CsvRecordStore(tmp_path)
        assert reopened.read_cell("papers", 2, 3) == "file:///archive/x.pdf"
        assert reopened.last_row("papers") == 2


class TestPropertyStores:
    def test_memory_store_round_trip(self) -> None:
        props = MemoryPropertyStore()
        props.set_json("tickets", ["t1"])
        props.set("session", "papers")

        assert props.get_json("tickets") == ["t1"]
        assert props.get("session") == "papers"
        props.delete("session")
        props.delete("session")
        assert props.get("session") is None

    def test_malformed_json_reads_as_default(self) -> None:
        props = MemoryPropertyStore({"tickets": "not-json"})
        assert props.get_json("tickets", default=[]) == []

    def test_json_file_store_survives_new_instance(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "properties.json"
        JsonFilePropertyStore(str(path)).set("archive_session", '{"collection_name": "papers"}')

        reopened = JsonFilePropertyStore(str(path))
        assert reopened.get("archive_session") == '{"collection_name": "papers"}'
        reopened.delete("archive_session")
        assert JsonFilePropertyStore(str(path)).get("archive_session") is None
