"""Text rendering for plans, drift and apply results.

Changes are grouped under the deployment they touch, one line per
variable; updates list each changed field underneath. Values of secured
variables are never printed.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Literal

import typer

from bitbucket_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from bitbucket_provisioner.engine.types import ResourceChange

SENSITIVE = "(sensitive value)"

_MARK = {Action.CREATE: "+", Action.UPDATE: "~", Action.DELETE: "-"}
_COLOR = {Action.CREATE: "green", Action.UPDATE: "yellow", Action.DELETE: "red"}
_VERBS = {
    Action.CREATE: ("Creating", "created"),
    Action.UPDATE: ("Updating", "updated"),
    Action.DELETE: ("Deleting", "deleted"),
}


def styler(color: bool) -> Callable[..., str]:
    """``typer.style``, or an identity function when *color* is off."""
    return typer.style if color else lambda text, **_: text


def render_value(value: Any, *, masked: bool = False) -> str:
    if masked:
        return SENSITIVE
    if value is None or isinstance(value, str | bool):
        return json.dumps(value)
    return str(value)


def _attributes(change: ResourceChange) -> dict[str, Any]:
    return change.planned or change.prior or {}


def _secured(change: ResourceChange) -> bool:
    # Mask on either side, so unsecuring a variable does not leak its value.
    return any(attrs.get("secured") for attrs in (change.planned, change.prior) if attrs)


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    style = styler(color)
    attrs = _attributes(change)
    secured = _secured(change)
    key = attrs.get("key") or change.address.rpartition(".")[2]

    head = f"  {_MARK[change.action]} {key}"
    if change.action is Action.CREATE:
        head += f" = {render_value(attrs.get('value'), masked=secured)}"
        if secured:
            head += " (secured)"
    lines = [f"{head}  # {change.address}"]
    if change.action is Action.UPDATE:
        for field, delta in (change.diff or {}).items():
            masked = secured and field == "value"
            old = render_value(delta["from"], masked=masked)
            new = render_value(delta["to"], masked=masked)
            lines.append(f"      {field}: {old} -> {new}")
    return "\n".join(style(line, fg=_COLOR[change.action]) for line in lines)


def format_changes(changes: Iterable[ResourceChange], *, color: bool = True) -> str:
    """Actionable *changes*, grouped by deployment in first-seen order."""
    by_deployment: dict[str, list[ResourceChange]] = {}
    for change in changes:
        if change.actionable:
            deployment = str(_attributes(change).get("deployment", "(unknown deployment)"))
            by_deployment.setdefault(deployment, []).append(change)
    if not by_deployment:
        return "No changes. Deployment variables are up-to-date."

    style = styler(color)
    return "\n\n".join(
        "\n".join(
            [style(f"deployment {deployment}", bold=True)]
            + [format_change(c, color=color) for c in group]
        )
        for deployment, group in by_deployment.items()
    )


def _counts(summary: dict[str, int], verbs: tuple[str, str, str], *, color: bool) -> str:
    style = styler(color)
    parts = []
    for action, verb in zip((Action.CREATE, Action.UPDATE, Action.DELETE), verbs, strict=True):
        n = summary.get(action.value, 0)
        text = f"{n} {verb}"
        parts.append(style(text, fg=_COLOR[action]) if n else text)
    return ", ".join(parts)


def format_plan_summary(
    summary: dict[str, int], *, color: bool = True, header: str = "Plan"
) -> str:
    """``Plan: 2 to add, 1 to change, 0 to destroy.``"""
    return f"{header}: {_counts(summary, ('to add', 'to change', 'to destroy'), color=color)}."


def format_apply_summary(summary: dict[str, int], *, color: bool = True) -> str:
    """``Apply complete! Resources: 2 added, 0 changed, 0 destroyed.``"""
    head = styler(color)("Apply complete!", fg="green", bold=True)
    counts = _counts(summary, ("added", "changed", "destroyed"), color=color)
    return f"{head} Resources: {counts}."


def progress_line(change: ResourceChange, event: Literal["start", "done"]) -> str:
    """``Creating DB_URL...`` while running, ``DB_URL created`` once done."""
    ongoing, done = _VERBS[change.action]
    key = _attributes(change).get("key") or change.address
    return f"{ongoing} {key}..." if event == "start" else f"{key} {done} ({change.address})"
