"""Rendering of test failures into diagnostic text for the report."""

import linecache
import logging
import os
import sysconfig
import traceback
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console
from rich.text import Text

from testomat_reporter.models.result import Failure

log = logging.getLogger(__name__)

FAILURE_BANNER = "################[ Failure ]################"
DEPENDENCY_DIRS = ("site-packages", "dist-packages")
CODE_FRAME_CONTEXT = 2

_RUNTIME_DIRS = tuple(
    os.path.normcase(os.path.realpath(path))
    for path in {sysconfig.get_path("stdlib"), sysconfig.get_path("platstdlib")}
    if path
)


def is_user_frame(filename: str) -> bool:
    """Whether a frame belongs to the code under test.

    Drops pseudo-files such as ``<string>`` or ``<frozen importlib._bootstrap>``,
    installed third-party packages and the standard library.
    """
    if filename.startswith("<") or os.sep not in filename:
        return False
    if any(part in DEPENDENCY_DIRS for part in filename.split(os.sep)):
        return False
    normalized = os.path.normcase(os.path.realpath(filename))
    return not any(
        normalized == runtime_dir or normalized.startswith(runtime_dir + os.sep)
        for runtime_dir in _RUNTIME_DIRS
    )


def _render_value(value: Any) -> str:
    return value if isinstance(value, str) else repr(value)


def _step_title(step: Any) -> str:
    if isinstance(step, Mapping):
        title = step.get("title") or step.get("name")
    else:
        title = getattr(step, "title", None) or getattr(step, "name", None)
    return str(title) if title else str(step)


def _step_children(step: Any) -> Sequence[Any]:
    if isinstance(step, Mapping):
        children = step.get("steps")
    else:
        children = getattr(step, "steps", None)
    if isinstance(children, Sequence) and not isinstance(children, str):
        return children
    return ()


def format_steps(steps: Any) -> str:
    """Render a step tree as an indented list, one step per line."""
    if isinstance(steps, str):
        return steps
    if not isinstance(steps, Sequence):
        steps = [steps]

    lines: list[str] = []
    seen: set[int] = set()

    def walk(items: Sequence[Any], depth: int) -> None:
        for step in items:
            if isinstance(step, str):
                lines.append("  " * depth + step)
                continue
            if id(step) in seen:
                continue
            seen.add(id(step))
            lines.append("  " * depth + _step_title(step))
            walk(_step_children(step), depth + 1)

    walk(steps, 0)
    return "\n".join(lines)


@dataclass(frozen=True, kw_only=True)
class ErrorFormatter:
    """Builds the diagnostic text sent as a test's ``stack``.

    Output is ANSI styled unless ``colors`` is disabled.
    """

    colors: bool = True
    _console: Console = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        console = Console(
            force_terminal=True,
            color_system="standard",
            highlight=False,
            emoji=False,
        )
        object.__setattr__(self, "_console", console)

    def style(self, text: str, style: str) -> str:
        """Apply a rich style to text, returning the ANSI rendering."""
        if not self.colors:
            return text
        with self._console.capture() as capture:
            self._console.print(Text(text, style=style), end="", soft_wrap=True)
        return capture.get()

    def format(
        self,
        failure: Failure | None,
        message: str = "",
        steps: Any = None,
        stack: str = "",
    ) -> tuple[str, str]:
        """Render a failure and its steps.

        Every stage is rendered on its own: a stage that raises is logged and
        the text built by the other stages is kept.

        Args:
            failure: Failure raised by the test, if any
            message: Message supplied with the result
            steps: Step text or step tree recorded for the test
            stack: Preformatted diagnostic, used when there is no failure

        Returns:
            The message to report and the diagnostic stack text

        """
        if failure is not None:
            message = message or failure.message
            if failure.has_custom_message:
                try:
                    message = str(failure.inspect())  # type: ignore[misc]
                except Exception:
                    log.warning("Could not render failure message", exc_info=True)
            stack = self.format_failure(failure, message)

        if steps:
            try:
                rendered_steps = format_steps(steps)
            except Exception:
                log.warning("Could not render steps", exc_info=True)
                rendered_steps = ""
            if rendered_steps and stack:
                banner = self.style(FAILURE_BANNER, "bold red")
                stack = f"{rendered_steps}\n\n{banner}\n{stack}"
            elif rendered_steps:
                stack = rendered_steps

        return message, stack

    def format_failure(self, failure: Failure, message: str) -> str:
        """Render message, diff and trace of a failure."""
        stack = f"\n{self.style(message, 'bold')}\n"

        if failure.has_diff:
            try:
                stack += self.format_diff(failure)
            except Exception:
                log.warning("Could not render diff", exc_info=True)

        try:
            stack += self.format_trace(failure.frames)
        except Exception:
            log.warning("Could not render stack trace", exc_info=True)

        return stack

    def format_diff(self, failure: Failure) -> str:
        """Render expected and actual values, expected first."""
        diff = failure.diff
        if diff is None:
            return ""
        legend = (
            f"{self.style('+ expected', 'bold green')} "
            f"{self.style('- actual', 'bold red')}"
        )
        expected = "\n+ ".join(_render_value(diff.expected).split("\n"))
        actual = "\n- ".join(_render_value(diff.actual).split("\n"))
        return (
            f"\n\n{legend}"
            f"\n{self.style(f'+ {expected}', 'green')}"
            f"\n{self.style(f'- {actual}', 'red')}"
            "\n\n"
        )

    def format_trace(self, frames: Sequence[traceback.FrameSummary]) -> str:
        """Render a code frame for the innermost user frame plus the call list."""
        user_frames = [frame for frame in frames if is_user_frame(frame.filename)]
        if not user_frames:
            return ""

        parts = [self.format_code_frame(user_frames[-1]), ""]
        parts.extend(
            f"   at {frame.name} ({frame.filename}:{frame.lineno})"
            for frame in user_frames
        )
        return "\n".join(parts) + "\n"

    def format_code_frame(self, frame: traceback.FrameSummary) -> str:
        """Render the source lines around a frame, marking the failing one."""
        lineno = frame.lineno or 0
        first = max(lineno - CODE_FRAME_CONTEXT, 1)
        last = lineno + CODE_FRAME_CONTEXT
        width = len(str(last))

        lines: list[str] = []
        for current in range(first, last + 1):
            source = linecache.getline(frame.filename, current).rstrip("\n")
            if not source and current > lineno:
                break
            gutter = f"{current:>{width}} |"
            if current == lineno:
                lines.append(self.style(f" > {gutter} {source}", "bold"))
            else:
                lines.append(f"   {gutter} {source}")
        return "\n".join(lines)
