"""Tests for payload serialization and construction."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from testomat_reporter.payload import (
    build_test_payload,
    decycle,
    dumps,
    loads,
    retrocycle,
)


@dataclass(eq=False)
class Step:
    """Step tree node pointing back at its parent."""

    title: str
    parent: "Step | None" = field(default=None, repr=False)
    steps: list["Step"] = field(default_factory=list)


class TestDecycle:
    """Tests for decycle and retrocycle."""

    def test_plain_values_unchanged(self) -> None:
        """Acyclic values are copied as is."""
        value = {"a": [1, 2, {"b": None}], "c": "text"}

        assert decycle(value) == value

    def test_back_reference_replaced_by_marker(self) -> None:
        """A reference to an ancestor becomes a $ref marker."""
        parent: dict[str, Any] = {"title": "parent", "steps": []}
        child = {"title": "child", "parent": parent}
        parent["steps"].append(child)

        result = decycle({"steps": [parent]})

        assert result == {
            "steps": [
                {
                    "title": "parent",
                    "steps": [{"title": "child", "parent": {"$ref": '$["steps"][0]'}}],
                }
            ]
        }

    def test_self_reference(self) -> None:
        """An object containing itself refers to the root."""
        node: dict[str, Any] = {}
        node["self"] = node

        assert decycle(node) == {"self": {"$ref": "$"}}

    def test_shared_reference_replaced(self) -> None:
        """A value reachable twice is serialized once."""
        shared = {"id": 1}

        result = decycle({"a": shared, "b": shared})

        assert result == {"a": {"id": 1}, "b": {"$ref": '$["a"]'}}

    def test_empty_containers_not_marked(self) -> None:
        """Empty containers are never turned into references."""
        empty: tuple[()] = ()

        assert decycle({"a": empty, "b": empty}) == {"a": [], "b": []}

    def test_dataclass_tree(self) -> None:
        """Dataclass step trees are walked by field."""
        root = Step(title="root")
        root.steps.append(Step(title="child", parent=root))

        result = decycle(root)

        assert result == {
            "title": "root",
            "parent": None,
            "steps": [{"title": "child", "parent": {"$ref": "$"}, "steps": []}],
        }

    def test_retrocycle_restores_references(self) -> None:
        """Markers are replaced by the objects they point at."""
        document = json.loads(
            '{"steps": [{"title": "parent", "steps": '
            '[{"title": "child", "parent": {"$ref": "$[\\"steps\\"][0]"}}]}]}'
        )

        restored = retrocycle(document)

        parent = restored["steps"][0]
        assert parent["steps"][0]["parent"] is parent


class TestDumpsLoads:
    """Tests for dumps and loads."""

    def test_cyclic_steps_serialize_and_parse(self) -> None:
        """A step tree with ancestor references produces finite, parseable JSON."""
        root: dict[str, Any] = {"title": "root", "steps": []}
        child: dict[str, Any] = {"title": "child", "parent": root, "steps": []}
        grandchild = {"title": "grandchild", "parent": child, "root": root}
        root["steps"].append(child)
        child["steps"].append(grandchild)

        text = dumps({"steps": [root]})
        parsed = json.loads(text)
        restored = loads(text)

        assert parsed["steps"][0]["steps"][0]["parent"] == {"$ref": '$["steps"][0]'}
        restored_root = restored["steps"][0]
        restored_child = restored_root["steps"][0]
        assert restored_child["parent"] is restored_root
        assert restored_child["steps"][0]["parent"] is restored_child
        assert restored_child["steps"][0]["root"] is restored_root

    def test_keys_needing_escapes(self) -> None:
        """Reference paths survive keys with quotes and brackets."""
        shared = {"v": 1}
        text = dumps({'we"ird[0]': shared, "other": shared})

        restored = loads(text)

        assert restored["other"] is restored['we"ird[0]']

    def test_non_json_values_are_stringified(self) -> None:
        """Leaves without a JSON form are rendered as strings."""
        assert json.loads(dumps({"file": Path("/tmp/shot.png")})) == {
            "file": "/tmp/shot.png"
        }


class TestBuildTestPayload:
    """Tests for build_test_payload."""

    def test_contains_all_wire_fields(self) -> None:
        """Payload carries every field of a test result."""
        payload = build_test_payload(
            api_key="tstmt_key",
            status="failed",
            stack="trace",
            message="boom",
            test_id="t1",
            title="login",
            suite_title="auth",
            suite_id="s1",
            files=["shot.png"],
            steps="I log in",
            example={"user": "admin"},
            run_time=1.5,
            artifacts=["https://s3/shot.png"],
        )

        assert payload == {
            "api_key": "tstmt_key",
            "files": ["shot.png"],
            "steps": "I log in",
            "status": "failed",
            "stack": "trace",
            "example": {"user": "admin"},
            "title": "login",
            "suite_title": "auth",
            "suite_id": "s1",
            "test_id": "t1",
            "message": "boom",
            "run_time": 1.5,
            "artifacts": ["https://s3/shot.png"],
        }

    def test_drops_missing_artifacts(self) -> None:
        """Uploads that produced nothing are left out."""
        payload = build_test_payload(
            api_key="key",
            status="passed",
            stack="",
            message="",
            artifacts=[None, "https://s3/log.txt", None],
        )

        assert payload["artifacts"] == ["https://s3/log.txt"]
