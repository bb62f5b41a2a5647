import logging

import pytest
import dataframely as dy
import polars as pl
from polars.testing import assert_frame_equal

from tmfast_py.ingestion.error import FieldFormatError
from tmfast_py.runtime_utils.process_logger import ProcessLogger


class Schema(dy.Schema):
    "Trivial schema to test how dataframely reports errors."
    key = dy.Int64(primary_key=True, min=0)
    value1 = dy.Float64(nullable=False)


@pytest.fixture(name="schema")
def fixture_schema() -> type[Schema]:
    "Wrapper around Schema for registration as a fixture."
    return Schema


def test_unstarted_log(caplog: pytest.LogCaptureFixture) -> None:
    "It logs unraised validation errors with the correct type and message."

    process_logger = ProcessLogger("test_unstarted_log")
    process_logger.add_metadata(foo="bar")
    process_logger.log_failure(Exception("test"))
    process_logger.log_complete()

    assert "status=complete" in caplog.text


def test_unraised_exception(caplog: pytest.LogCaptureFixture) -> None:
    "It doesn't output `NoneType: None` when the exception has no traceback."

    process_logger = ProcessLogger("test_not_none")
    process_logger.log_start()

    exception = Exception("foo")

    process_logger.log_failure(Exception(exception))

    assert not exception.__traceback__
    assert "NoneType: None" not in caplog.text.splitlines()


def test_start_logging_explicitly(caplog: pytest.LogCaptureFixture) -> None:
    "It doesn't start the log when it initializes."

    ProcessLogger("test_not_none", foo="bar")

    assert caplog.text == ""


def test_protected_keys(caplog: pytest.LogCaptureFixture) -> None:
    "It ignores metadata that would overwrite default data."

    process_logger = ProcessLogger("test_protected_keys", status="bogus", table="stops.txt")
    process_logger.log_start()

    assert "status=started" in caplog.text
    assert "status=bogus" not in caplog.text
    assert "table=stops.txt" in caplog.text
    assert "parent=tmfast_test" in caplog.text


def test_warning(caplog: pytest.LogCaptureFixture) -> None:
    "It logs a warning with the exception type and keeps going."

    process_logger = ProcessLogger("test_warning", table="routes.txt")
    process_logger.log_warning(FieldFormatError("skipped 2 malformed rows", table="routes.txt"))
    process_logger.log_complete()

    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "error_type=FieldFormatError" in warnings[0].getMessage()
    assert "warning=skipped 2 malformed rows" in warnings[0].getMessage()
    assert "error_type" not in caplog.records[-1].getMessage()
    assert "status=complete" in caplog.records[-1].getMessage()


def test_2_errors(schema: type[Schema], caplog: pytest.LogCaptureFixture) -> None:
    "It gracefully logs 2 errors as warnings."
    process_logger = ProcessLogger("test_2_errors")

    df = pl.DataFrame({"key": range(-1, 9), "value1": [float(n) for n in range(0, 9)] + [None]})

    invalid_records = process_logger.log_dataframely_filter_results(*schema.filter(df))

    assert invalid_records == 2
    assert "key|min" in caplog.text
    assert "value1|nullability" in caplog.text
    assert "invalid_records=2" in caplog.text
    assert "valid_records=8" in caplog.text
    assert logging.WARNING in [r[1] for r in caplog.record_tuples]


def test_1_error(schema: type[Schema], caplog: pytest.LogCaptureFixture) -> None:
    "It gracefully logs 1 error as a warning."
    process_logger = ProcessLogger("test_1_error")

    df = pl.DataFrame({"key": range(-1, 9), "value1": [float(n) * 1.5 for n in range(10)]})

    invalid_records = process_logger.log_dataframely_filter_results(*schema.filter(df))

    assert invalid_records == 1
    assert "ValidationError" in caplog.text
    assert "key|min" in caplog.text
    assert "invalid_records=1" in caplog.text
    assert logging.WARNING in [r[1] for r in caplog.record_tuples]


def test_0_errors(schema: type[Schema], caplog: pytest.LogCaptureFixture) -> None:
    "It logs 0 invalid records and no warning."
    process_logger = ProcessLogger("test_no_errors")
    process_logger.log_start()

    df1 = pl.DataFrame({"key": range(0, 10), "value1": [float(n) for n in range(10)]})

    valid, failure = schema.filter(df1)
    invalid_records = process_logger.log_dataframely_filter_results(valid, failure)

    assert invalid_records == 0
    assert "ValidationError" not in caplog.text
    assert "invalid_records=0" in caplog.text
    assert logging.WARNING not in [r[1] for r in caplog.record_tuples]

    assert_frame_equal(df1, valid)
