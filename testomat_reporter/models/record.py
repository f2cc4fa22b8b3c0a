"""Models for test results loaded from a results file."""

from collections.abc import Sequence
from typing import Any, Literal

from pydantic import Field, TypeAdapter

from testomat_reporter.models.base import Model
from testomat_reporter.models.result import Diff, Failure, TestData


class ErrorRecord(Model):
    """Failure recorded for a test."""

    message: str = Field(default="", description="Failure message")
    actual: Any = Field(default=None, description="Actual value of a failed assertion")
    expected: Any = Field(
        default=None, description="Expected value of a failed assertion"
    )

    def to_failure(self) -> Failure:
        """Convert into a failure record for the formatter."""
        diff = (
            Diff(actual=self.actual, expected=self.expected)
            if self.actual is not None and self.expected is not None
            else None
        )
        return Failure(message=self.message, diff=diff)


class TestRecord(Model):
    """One executed test as written to a results file."""

    __test__ = False

    status: Literal["passed", "failed", "skipped"] = Field(
        ..., description="Outcome of the test"
    )
    test_id: str | None = Field(default=None, description="Testomat.io test id")
    title: str | None = Field(default=None, description="Test title")
    suite_title: str | None = Field(default=None, description="Suite title")
    suite_id: str | None = Field(default=None, description="Testomat.io suite id")
    message: str = Field(default="", description="Result message")
    error: ErrorRecord | None = Field(default=None, description="Failure details")
    stack: str = Field(
        default="", description="Preformatted diagnostic, used without an error"
    )
    time: float | None = Field(default=None, description="Run time")
    files: Sequence[str] = Field(default_factory=list, description="Attached files")
    steps: Any = Field(default=None, description="Step text or step tree")
    example: Any = Field(default=None, description="Example or parameter data")

    def to_test_data(self) -> TestData:
        """Convert into the descriptor accepted by the client."""
        return TestData(
            message=self.message,
            error=self.error.to_failure() if self.error else None,
            stack=self.stack,
            time=self.time,
            example=self.example,
            files=tuple(self.files),
            steps=self.steps,
            title=self.title,
            suite_title=self.suite_title,
            suite_id=self.suite_id,
            test_id=self.test_id,
        )


records_adapter = TypeAdapter(list[TestRecord])
