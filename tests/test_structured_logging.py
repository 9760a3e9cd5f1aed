import json
import logging

import pytest

from linearcmd.logging import StructuredLogger, configure_logging, get_logger


def _records(err: str) -> list[dict]:
    return [json.loads(line) for line in err.splitlines() if line.strip()]


def test_json_logging_to_stderr(capsys):
    logger = configure_logging(json_logging=True, level="DEBUG")
    logger.log_probe("work", "issue", "WAY-1", "found", source="cache")

    captured = capsys.readouterr()
    assert captured.out == ""
    (record,) = _records(captured.err)
    assert record["operation"] == "probe"
    assert record["account"] == "work"
    assert record["entity_id"] == "WAY-1"
    assert record["outcome"] == "found"
    assert record["source"] == "cache"
    assert record["level"] == "DEBUG"


def test_json_logging_dedupes_consecutive_duplicates(capsys):
    logger = configure_logging(json_logging=True, level="INFO")
    logger.log_operation("account.add", account="work")
    logger.log_operation("account.add", account="work")
    logger.log_operation("account.add", account="personal")
    assert len(_records(capsys.readouterr().err)) == 2


def test_level_filters_lookup_records(capsys):
    logger = configure_logging(level="WARNING")
    logger.log_probe("work", "issue", "WAY-1", "not_found")
    logger.log_probe("work", "issue", "WAY-1", "unauthorized", level=logging.WARNING)
    err = capsys.readouterr().err
    assert "not_found" not in err
    assert "unauthorized" in err


def test_timed_operation_reports_failure(capsys):
    logger = StructuredLogger(json_logging=True, level="INFO")
    with pytest.raises(RuntimeError):
        with logger.timed_operation("issue.show"):
            raise RuntimeError("boom")
    records = _records(capsys.readouterr().err)
    assert records[-1]["error"] == "boom"
    assert records[-1]["level"] == "ERROR"


def test_get_logger_is_shared():
    assert get_logger() is get_logger()
    configured = configure_logging(level="DEBUG")
    assert get_logger() is configured
