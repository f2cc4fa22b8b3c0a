"""Wire payloads for the reporting API.

Step trees handed over by test frameworks often point back at their parents.
:func:`decycle` replaces every repeated object with a ``{"$ref": path}``
marker, where ``path`` addresses the first occurrence of the object from the
document root (``$["steps"][0]``). :func:`retrocycle` turns the markers back
into references after parsing.
"""

import dataclasses
import json
import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any

from pydantic import BaseModel

from testomat_reporter.models.result import TestStatus

REF_KEY = "$ref"
ROOT_PATH = "$"

_PATH_SEGMENT = re.compile(r'\[(?:(\d+)|("(?:[^"\\]|\\.)*"))\]')


def _children(value: Any) -> Mapping[str, Any] | Sequence[Any] | None:
    """Return the container view of a value, or None for leaves."""
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (list, tuple)):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, BaseModel):
        return {name: getattr(value, name) for name in type(value).model_fields}
    return None


def decycle(value: Any) -> Any:
    """Copy a value into plain JSON containers, replacing repeats by markers."""
    seen: dict[int, tuple[Any, str]] = {}

    def walk(current: Any, path: str) -> Any:
        children = _children(current)
        if children is None:
            return current
        if not children:
            return {} if isinstance(children, Mapping) else []

        if (known := seen.get(id(current))) is not None:
            return {REF_KEY: known[1]}
        seen[id(current)] = (current, path)

        if isinstance(children, Mapping):
            return {
                str(key): walk(child, f"{path}[{json.dumps(str(key))}]")
                for key, child in children.items()
            }
        return [walk(child, f"{path}[{index}]") for index, child in enumerate(children)]

    return walk(value, ROOT_PATH)


def _resolve(root: Any, path: str) -> Any:
    if not path.startswith(ROOT_PATH):
        raise ValueError(f"Invalid reference path: {path!r}")

    target = root
    for index, key in _PATH_SEGMENT.findall(path[len(ROOT_PATH) :]):
        target = target[int(index)] if index else target[json.loads(key)]
    return target


def _is_ref(value: Any) -> bool:
    return (
        isinstance(value, Mapping)
        and len(value) == 1
        and isinstance(value.get(REF_KEY), str)
    )


def retrocycle(document: Any) -> Any:
    """Replace ``$ref`` markers in a parsed document, in place."""

    def walk(current: Any) -> None:
        if isinstance(current, MutableMapping):
            items: list[tuple[Any, Any]] = list(current.items())
        elif isinstance(current, MutableSequence):
            items = list(enumerate(current))
        else:
            return

        for key, child in items:
            if _is_ref(child):
                current[key] = _resolve(document, child[REF_KEY])
            else:
                walk(child)

    if _is_ref(document):
        return document
    walk(document)
    return document


def dumps(value: Any) -> str:
    """Serialize any value graph to JSON, cycles included."""
    return json.dumps(decycle(value), default=str)


def loads(text: str) -> Any:
    """Parse JSON produced by :func:`dumps`, restoring references."""
    return retrocycle(json.loads(text))


def build_test_payload(
    *,
    api_key: str,
    status: TestStatus,
    stack: str,
    message: str,
    test_id: str | None = None,
    title: str | None = None,
    suite_title: str | None = None,
    suite_id: str | None = None,
    files: Sequence[str] = (),
    steps: Any = None,
    example: Any = None,
    run_time: float | None = None,
    artifacts: Sequence[Any] = (),
) -> dict[str, Any]:
    """Assemble the body of a test result submission.

    Artifacts that resolved to ``None`` (nothing uploaded) are left out.
    """
    return {
        "api_key": api_key,
        "files": list(files),
        "steps": steps,
        "status": status,
        "stack": stack,
        "example": example,
        "title": title,
        "suite_title": suite_title,
        "suite_id": suite_id,
        "test_id": test_id,
        "message": message,
        "run_time": run_time,
        "artifacts": [artifact for artifact in artifacts if artifact is not None],
    }
