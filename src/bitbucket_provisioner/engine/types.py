"""Plan and apply result models."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "no-op"


class ResourceChange(BaseModel):
    """What the engine intends to do (or did) at one address.

    ``desired`` is enough to rebuild the resource model at apply time.
    ``planned`` holds the attributes that will be compared with ``prior``
    (the attributes recorded in state); ``diff`` maps each differing field
    to ``{"from": ..., "to": ...}``.
    """

    address: str
    resource_type: str
    action: Action
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    planned: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None

    @property
    def actionable(self) -> bool:
        return self.action is not Action.NOOP


def count_actions(changes: Iterable[ResourceChange]) -> dict[str, int]:
    """``{"create": n, "update": n, "delete": n}`` for *changes*; no-ops are ignored."""
    counts = Counter(c.action.value for c in changes if c.actionable)
    return {a.value: counts[a.value] for a in (Action.CREATE, Action.UPDATE, Action.DELETE)}


class Plan(BaseModel):
    workspace: str
    destroy: bool = False
    # State serial the plan was computed against; apply refuses any other.
    state_serial: int = 0
    changes: list[ResourceChange] = Field(default_factory=list)

    @property
    def actionable(self) -> list[ResourceChange]:
        return [c for c in self.changes if c.actionable]

    def summary(self) -> dict[str, int]:
        return count_actions(self.changes)


class ApplyResult(BaseModel):
    applied: list[ResourceChange] = Field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return count_actions(self.applied)
