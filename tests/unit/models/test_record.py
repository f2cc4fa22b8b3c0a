"""Tests for results file records."""

from testomat_reporter.models.record import ErrorRecord, records_adapter
from testomat_reporter.models.result import Diff
from testomat_reporter.testing.factories import TestRecordFactory


def test_parses_results_file() -> None:
    """Parses a JSON array of test records."""
    records = records_adapter.validate_json(
        """[
            {"status": "passed", "test_id": "t1", "title": "login", "time": 0.5},
            {
                "status": "failed",
                "title": "logout",
                "error": {"message": "boom", "actual": "foo", "expected": "bar"},
                "files": ["shot.png"],
                "steps": [{"title": "click logout"}]
            }
        ]"""
    )

    assert [r.status for r in records] == ["passed", "failed"]
    assert records[0].test_id == "t1"
    assert records[1].error == ErrorRecord(message="boom", actual="foo", expected="bar")


def test_to_test_data_converts_error() -> None:
    """Error records become failures carrying the diff."""
    record = TestRecordFactory.build(
        status="failed",
        message="",
        error=ErrorRecord(message="boom", actual="foo", expected="bar"),
        files=["shot.png"],
    )

    data = record.to_test_data()

    assert data.error is not None
    failure = data.failure
    assert failure is not None
    assert failure.message == "boom"
    assert failure.diff == Diff(actual="foo", expected="bar")
    assert data.files == ("shot.png",)
    assert data.title == record.title
    assert data.test_id == record.test_id


def test_to_test_data_without_error() -> None:
    """Passing records carry no error."""
    record = TestRecordFactory.build(status="passed")

    assert record.to_test_data().error is None


def test_error_record_without_diff() -> None:
    """Errors without both values produce no diff."""
    failure = ErrorRecord(message="boom", actual="foo").to_failure()

    assert failure.diff is None


def test_to_test_data_keeps_stack() -> None:
    """A preformatted stack is handed over as is."""
    record = TestRecordFactory.build(
        status="failed", error=None, stack="Error: boom\n    at login (a.js:1)"
    )

    data = record.to_test_data()

    assert data.stack == "Error: boom\n    at login (a.js:1)"
    assert data.error is None
