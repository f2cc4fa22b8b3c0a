"""Data structures shared by the reporting client."""

from testomat_reporter.models.result import (
    Diff,
    Failure,
    RunStatus,
    TestData,
    TestStatus,
)
from testomat_reporter.models.run import Run

__all__ = ["Diff", "Failure", "Run", "RunStatus", "TestData", "TestStatus"]
