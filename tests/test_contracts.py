from __future__ import annotations

import pytest

from config import ArchiverSettings
from core import FailureKind, ItemOutcome, ItemState, JobConfig, StepResult, WorkItem
from utils import ConfigurationError


def test_job_config_from_settings_resolves_columns() -> None:
    settings = ArchiverSettings(source_column="B", extracted_column="D", result_column="AA", container_id="box")
    cfg = JobConfig.from_settings(settings)

    assert (cfg.source_column, cfg.extracted_column, cfg.result_column) == (2, 4, 27)
    assert cfg.container_id == "box"
    assert cfg.artifact_extension == ".pdf"


def test_job_config_rejects_ceiling_at_or_above_hard_limit() -> None:
    settings = ArchiverSettings(time_ceiling_seconds=360, hard_limit_seconds=360)
    with pytest.raises(ConfigurationError):
        JobConfig.from_settings(settings)


def test_job_config_rejects_overlapping_columns_and_bad_letters() -> None:
    with pytest.raises(ConfigurationError):
        JobConfig.from_settings(ArchiverSettings(source_column="A", result_column="A"))
    with pytest.raises(ConfigurationError):
        JobConfig.from_settings(ArchiverSettings(source_column="A-1"))


def test_job_config_requires_container() -> None:
    with pytest.raises(ConfigurationError):
        JobConfig.from_settings(ArchiverSettings(container_id="  "))


def test_job_config_normalizes_extension() -> None:
    cfg = JobConfig(source_column=1, extracted_column=2, result_column=3, container_id="c", artifact_extension="PDF")
    assert cfg.artifact_extension == ".pdf"


def test_item_state_is_derived_from_result_cell() -> None:
    assert ItemState.from_result("", "ERROR: ") == ItemState.PENDING
    assert ItemState.from_result(None, "ERROR: ") == ItemState.PENDING
    assert ItemState.from_result("ERROR: fetch failed: HTTP 404", "ERROR: ") == ItemState.FAILED
    assert ItemState.from_result("memory://archive/1/x.pdf", "ERROR: ") == ItemState.SUCCEEDED


def test_work_item_processed_flag_follows_result() -> None:
    assert WorkItem(row=2, source_reference=" https://a.co/x.pdf ").source_reference == "https://a.co/x.pdf"
    assert WorkItem(row=2, source_reference="x", result_reference="  ").is_processed is False
    assert WorkItem(row=2, source_reference="x", result_reference="ref").is_processed is True


def test_item_outcome_failure_description_and_step_result() -> None:
    outcome = ItemOutcome.failed(5, FailureKind.FETCH, "HTTP 500")
    assert outcome.state == ItemState.FAILED
    assert outcome.describe_failure() == "fetch failed: HTTP 500"

    assert StepResult.success(b"x").ok is True
    failed = StepResult.failure("nope")
    assert failed.ok is False
    assert failed.value is None
