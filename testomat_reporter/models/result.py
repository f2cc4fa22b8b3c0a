"""Models for test results handed to the reporting client."""

import traceback
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

type TestStatus = Literal["passed", "failed", "skipped"]
type RunStatus = Literal["passed", "failed", "finished"]


@dataclass(frozen=True, kw_only=True)
class Diff:
    """Actual and expected values carried by an assertion failure."""

    actual: Any
    expected: Any


@dataclass(frozen=True, kw_only=True)
class Failure:
    """A raised test failure, reduced to the capabilities the formatter uses.

    Assertion libraries attach optional extras to their exceptions: some carry
    ``actual``/``expected`` values, some know how to render themselves through
    an ``inspect()`` method. Those extras are looked up once, in
    :meth:`from_exception`, and exposed as explicit capabilities afterwards.
    """

    message: str
    diff: Diff | None = None
    inspect: Callable[[], str] | None = field(default=None, repr=False)
    frames: Sequence[traceback.FrameSummary] = field(default=(), repr=False)

    @property
    def has_diff(self) -> bool:
        """Whether both an actual and an expected value are available."""
        return (
            self.diff is not None
            and self.diff.actual is not None
            and self.diff.expected is not None
        )

    @property
    def has_custom_message(self) -> bool:
        """Whether the failure renders its own message."""
        return self.inspect is not None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        """Build a failure record from an arbitrary exception."""
        actual = getattr(exc, "actual", None)
        expected = getattr(exc, "expected", None)
        diff = (
            Diff(actual=actual, expected=expected)
            if actual is not None and expected is not None
            else None
        )

        inspect = getattr(exc, "inspect", None)
        if not callable(inspect):
            inspect = None

        frames: Sequence[traceback.FrameSummary] = ()
        if exc.__traceback__ is not None:
            frames = traceback.extract_tb(exc.__traceback__)

        return cls(message=str(exc), diff=diff, inspect=inspect, frames=frames)


@dataclass(frozen=True, kw_only=True)
class TestData:
    """Outcome details of one executed test.

    ``steps`` is either preformatted text or a step tree; step trees may hold
    references back to their ancestors.
    ``stack`` is a preformatted diagnostic for results that carry no ``error``.
    """

    __test__ = False

    message: str = ""
    error: BaseException | Failure | None = None
    stack: str = ""
    time: float | None = None
    example: Any = None
    files: Sequence[str] = ()
    steps: Any = None
    title: str | None = None
    suite_title: str | None = None
    suite_id: str | None = None
    test_id: str | None = None

    @property
    def failure(self) -> Failure | None:
        """The error as a :class:`Failure`, if there is one."""
        if self.error is None or isinstance(self.error, Failure):
            return self.error
        return Failure.from_exception(self.error)
