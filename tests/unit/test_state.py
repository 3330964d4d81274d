from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from bitbucket_provisioner.core.state import ResourceInstance, State, attributes_hash

if TYPE_CHECKING:
    from pathlib import Path


def _instance() -> ResourceInstance:
    inst = ResourceInstance(
        address="bitbucket_deployment_variable.k",
        resource_type="bitbucket_deployment_variable",
        name="k",
    )
    inst.record({"key": "K", "value": "v", "secured": False, "uuid": "{u1}"})
    return inst


def test_attributes_hash_is_order_independent() -> None:
    assert attributes_hash({"a": 1, "b": 2}) == attributes_hash({"b": 2, "a": 1})
    assert attributes_hash({"a": 1}) != attributes_hash({"a": 2})


class TestRecord:
    def test_updates_hash_and_timestamp(self) -> None:
        inst = _instance()
        first_update = inst.updated_at

        inst.record({"key": "K", "value": "w"})

        assert inst.attributes_hash == attributes_hash({"key": "K", "value": "w"})
        assert inst.updated_at >= first_update
        assert inst.created_at <= inst.updated_at

    def test_dependencies_only_replaced_when_given(self) -> None:
        inst = _instance()
        inst.record({"key": "K"}, dependencies=["bitbucket_deployment_variable.other"])
        inst.record({"key": "K2"})

        assert inst.dependencies == ["bitbucket_deployment_variable.other"]

    def test_copies_attributes(self) -> None:
        attrs = {"key": "K"}
        inst = _instance()
        inst.record(attrs)
        attrs["key"] = "mutated"

        assert inst.attributes == {"key": "K"}


class TestCommit:
    def test_roundtrip_bumps_serial_and_keeps_backup(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "state.json"
        state = State(workspace="acme", resources={"x": _instance()})

        state.commit(path)
        state.commit(path)

        loaded = State.load(path)
        assert loaded.serial == 2
        assert loaded.resources["x"].attributes["uuid"] == "{u1}"
        assert State.load(path.with_name("state.json.backup")).serial == 1
        assert not [p for p in path.parent.iterdir() if p.name.startswith(".state.json.")]

    def test_written_as_indented_json(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        State(workspace="acme").commit(path)

        text = path.read_text(encoding="utf-8")
        assert text.endswith("\n")
        assert json.loads(text)["workspace"] == "acme"
        assert '\n  "serial": 1' in text

    def test_failed_replace_keeps_old_file(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        State(workspace="acme").commit(path)

        with (
            patch("bitbucket_provisioner.core.state.os.replace", side_effect=OSError("disk")),
            pytest.raises(OSError, match="disk"),
        ):
            State(workspace="acme", serial=40).commit(path)

        assert State.load(path).serial == 1
        assert [p.name for p in tmp_path.iterdir() if p.name.startswith(".")] == []


def test_load_or_new(tmp_path: Path) -> None:
    path = tmp_path / "state.json"

    state = State.load_or_new(path, workspace="acme")

    assert state.workspace == "acme"
    assert state.serial == 0
    assert state.resources == {}
    assert not path.exists()
