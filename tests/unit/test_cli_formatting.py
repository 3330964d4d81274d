from __future__ import annotations

import re

from bitbucket_provisioner.cli.formatting import (
    SENSITIVE,
    format_apply_summary,
    format_change,
    format_changes,
    format_plan_summary,
    progress_line,
    render_value,
)
from bitbucket_provisioner.engine.types import Action, ResourceChange, count_actions

_TYPE = "bitbucket_deployment_variable"
_STAGING = "acme/api:{staging}"
_PRODUCTION = "acme/api:{production}"


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def _create(name: str, key: str, deployment: str, *, value: str = "v", secured: bool = False):
    return ResourceChange(
        address=f"{_TYPE}.{name}",
        resource_type=_TYPE,
        action=Action.CREATE,
        planned={"key": key, "value": value, "secured": secured, "deployment": deployment},
    )


class TestRenderValue:
    def test_scalars(self) -> None:
        assert render_value("pg://db") == '"pg://db"'
        assert render_value(True) == "true"
        assert render_value(None) == "null"
        assert render_value(3) == "3"

    def test_quotes_are_escaped(self) -> None:
        assert render_value('say "hi"') == '"say \\"hi\\""'

    def test_masked(self) -> None:
        assert render_value("s3cret", masked=True) == SENSITIVE


class TestFormatPlanSummary:
    def test_all_zeros(self) -> None:
        result = format_plan_summary({"create": 0, "update": 0, "delete": 0}, color=False)
        assert result == "Plan: 0 to add, 0 to change, 0 to destroy."

    def test_custom_header(self) -> None:
        result = format_plan_summary({"update": 1}, color=False, header="Refresh")
        assert result == "Refresh: 0 to add, 1 to change, 0 to destroy."

    def test_only_nonzero_counts_are_colored(self) -> None:
        result = format_plan_summary({"create": 1, "update": 0, "delete": 0}, color=True)
        assert "\x1b[" in result
        assert "0 to change" in result
        assert _strip_ansi(result) == "Plan: 1 to add, 0 to change, 0 to destroy."


class TestFormatApplySummary:
    def test_with_counts(self) -> None:
        result = format_apply_summary({"create": 1, "update": 2, "delete": 0}, color=False)
        assert result == "Apply complete! Resources: 1 added, 2 changed, 0 destroyed."


class TestFormatChange:
    def test_create_shows_key_and_value(self) -> None:
        result = format_change(_create("db_url", "DB_URL", _STAGING, value="pg://db"), color=False)
        assert result == f'  + DB_URL = "pg://db"  # {_TYPE}.db_url'

    def test_update_lists_changed_fields(self) -> None:
        change = ResourceChange(
            address=f"{_TYPE}.db_url",
            resource_type=_TYPE,
            action=Action.UPDATE,
            prior={"key": "DB_URL", "value": "old", "deployment": _STAGING},
            planned={"key": "DB_URL", "value": "new", "deployment": _STAGING},
            diff={"value": {"from": "old", "to": "new"}},
        )
        lines = format_change(change, color=False).splitlines()
        assert lines == [f"  ~ DB_URL  # {_TYPE}.db_url", '      value: "old" -> "new"']

    def test_delete(self) -> None:
        change = ResourceChange(
            address=f"{_TYPE}.db_url",
            resource_type=_TYPE,
            action=Action.DELETE,
            prior={"key": "DB_URL", "deployment": _STAGING},
        )
        assert format_change(change, color=False) == f"  - DB_URL  # {_TYPE}.db_url"

    def test_key_falls_back_to_name(self) -> None:
        change = ResourceChange(address=f"{_TYPE}.gone", resource_type=_TYPE, action=Action.DELETE)
        assert format_change(change, color=False).startswith("  - gone")

    def test_color(self) -> None:
        result = format_change(_create("a", "A", _STAGING), color=True)
        assert "\x1b[" in result
        assert _strip_ansi(result) == format_change(_create("a", "A", _STAGING), color=False)


class TestSecuredValues:
    def test_create_masks_value(self) -> None:
        change = _create("token", "TOKEN", _STAGING, value="s3cret", secured=True)
        result = format_change(change, color=False)
        assert "s3cret" not in result
        assert f"+ TOKEN = {SENSITIVE} (secured)" in result

    def test_update_masks_both_sides(self) -> None:
        change = ResourceChange(
            address=f"{_TYPE}.token",
            resource_type=_TYPE,
            action=Action.UPDATE,
            prior={"key": "TOKEN", "value": "", "secured": True},
            planned={"key": "TOKEN", "value": "s3cret", "secured": True},
            diff={"value": {"from": "", "to": "s3cret"}},
        )
        result = format_change(change, color=False)
        assert "s3cret" not in result
        assert f"value: {SENSITIVE} -> {SENSITIVE}" in result

    def test_unsecuring_still_masks(self) -> None:
        change = ResourceChange(
            address=f"{_TYPE}.token",
            resource_type=_TYPE,
            action=Action.UPDATE,
            prior={"key": "TOKEN", "value": "", "secured": True},
            planned={"key": "TOKEN", "value": "plain", "secured": False},
            diff={
                "value": {"from": "", "to": "plain"},
                "secured": {"from": True, "to": False},
            },
        )
        result = format_change(change, color=False)
        assert "plain" not in result
        assert "secured: true -> false" in result


class TestFormatChanges:
    def test_grouped_by_deployment_in_first_seen_order(self) -> None:
        changes = [
            _create("a", "A", _STAGING),
            _create("b", "B", _PRODUCTION),
            _create("c", "C", _STAGING),
        ]
        blocks = format_changes(changes, color=False).split("\n\n")

        assert blocks[0].splitlines()[0] == f"deployment {_STAGING}"
        assert [line.split()[1] for line in blocks[0].splitlines()[1:]] == ["A", "C"]
        assert blocks[1].splitlines()[0] == f"deployment {_PRODUCTION}"
        assert len(blocks) == 2

    def test_noop_only(self) -> None:
        changes = [ResourceChange(address=f"{_TYPE}.a", resource_type=_TYPE, action=Action.NOOP)]
        assert format_changes(changes, color=False) == (
            "No changes. Deployment variables are up-to-date."
        )

    def test_count_ignores_noop(self) -> None:
        changes = [
            ResourceChange(address=f"{_TYPE}.a", resource_type=_TYPE, action=Action.NOOP),
            _create("b", "B", _STAGING),
            ResourceChange(address=f"{_TYPE}.c", resource_type=_TYPE, action=Action.DELETE),
        ]
        assert count_actions(changes) == {"create": 1, "update": 0, "delete": 1}


class TestProgressLine:
    def test_start_and_done(self) -> None:
        change = _create("db_url", "DB_URL", _STAGING)
        assert progress_line(change, "start") == "Creating DB_URL..."
        assert progress_line(change, "done") == f"DB_URL created ({_TYPE}.db_url)"
