"""Terraform-style plan, apply and refresh over a JSON state file."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Literal

from bitbucket_provisioner.core.state import State
from bitbucket_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    IncompleteCreateError,
    StalePlanError,
    StateWorkspaceMismatchError,
    ValidationError,
)
from bitbucket_provisioner.engine.graph import reverse_topological_order, topological_order
from bitbucket_provisioner.engine.handlers import EngineContext
from bitbucket_provisioner.engine.lock import StateLock
from bitbucket_provisioner.engine.operations import run_change
from bitbucket_provisioner.engine.types import Action, ApplyResult, Plan, ResourceChange

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from bitbucket_provisioner.core import BitbucketProvider
    from bitbucket_provisioner.engine.registry import ResourceTypeRegistry
    from bitbucket_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]


def attribute_diff(new: Mapping[str, Any], old: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Fields of *new* whose value differs in *old*, as ``{field: {"from", "to"}}``."""
    return {k: {"from": old.get(k), "to": v} for k, v in new.items() if old.get(k) != v}


class BitbucketEngine:
    """Plans and applies a set of desired resources against one state file.

    Every state write happens under :class:`StateLock` and bumps the state
    serial. A plan records the serial it was made against, and apply
    refuses to run once the serial has moved on.
    """

    def __init__(
        self,
        *,
        provider: BitbucketProvider,
        workspace: str,
        state_path: Path,
        registry: ResourceTypeRegistry,
    ) -> None:
        self._provider = provider
        self._workspace = workspace
        self._state_path = state_path
        self._registry = registry

    @property
    def workspace(self) -> str:
        return self._workspace

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _context(self) -> EngineContext:
        return EngineContext(provider=self._provider, workspace=self._workspace)

    def _open_state(self) -> State:
        state = State.load_or_new(self._state_path, self._workspace)
        if state.workspace != self._workspace:
            raise StateWorkspaceMismatchError(self._workspace, state.workspace)
        return state

    def _sync(self, state: State) -> bool:
        """Re-read every tracked object into *state*. True if anything changed."""
        ctx = self._context()
        changed = False
        for address in sorted(state.resources):
            inst = state.resources[address]
            attrs = self._registry.handler(inst.resource_type).read(ctx, inst)
            if attrs is None:
                logger.info("%s is gone from Bitbucket; forgetting it", address)
                del state.resources[address]
                changed = True
            elif attrs != inst.attributes:
                logger.info("%s changed outside of this tool", address)
                inst.record(attrs)
                changed = True
        return changed

    def refresh(self, *, persist: bool = False) -> tuple[State, State]:
        """Re-read all tracked objects. Returns ``(before, after)`` states.

        The refreshed state is only written back when *persist* is set.
        """
        with StateLock(self._state_path):
            state = self._open_state()
            before = state.model_copy(deep=True)
            if self._sync(state) and persist:
                state.commit(self._state_path)
            return before, state

    def _index(self, resources: Sequence[Resource]) -> dict[str, Resource]:
        by_address: dict[str, Resource] = {}
        for resource in resources:
            if resource.address in by_address:
                raise DuplicateAddressError(resource.address)
            self._registry.get(resource.resource_type)
            by_address[resource.address] = resource
        return by_address

    def _check(self, desired: dict[str, Resource], state: State) -> None:
        ctx = self._context()
        problems: list[str] = []
        for resource in desired.values():
            problems += self._registry.handler(resource.resource_type).validate(ctx, resource)
            problems += [
                f"{resource.address} depends on unknown address {dep!r}"
                for dep in resource.depends_on
                if dep not in desired and dep not in state.resources
            ]
        if problems:
            raise ValidationError(problems)

    @staticmethod
    def _change_for(resource: Resource, state: State) -> ResourceChange:
        planned = resource.model_dump(exclude_none=True, exclude={"address", "depends_on"})
        inst = state.resources.get(resource.address)
        if inst is None:
            action, prior, diff = Action.CREATE, None, None
        else:
            prior = dict(inst.attributes)
            diff = attribute_diff(planned, prior) or None
            action = Action.UPDATE if diff else Action.NOOP
        return ResourceChange(
            address=resource.address,
            resource_type=resource.resource_type,
            action=action,
            desired=resource.model_dump(exclude_none=True, exclude={"address"}),
            prior=prior,
            planned=planned,
            diff=diff,
        )

    def _removals(self, state: State, addresses: set[str]) -> list[ResourceChange]:
        """DELETE changes for *addresses*, dependents before their dependencies."""
        dependencies = {a: state.resources[a].dependencies for a in addresses}
        removals = []
        for address in reverse_topological_order(addresses, dependencies):
            inst = state.resources[address]
            self._registry.get(inst.resource_type)
            removals.append(
                ResourceChange(
                    address=address,
                    resource_type=inst.resource_type,
                    action=Action.DELETE,
                    prior=dict(inst.attributes),
                )
            )
        return removals

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        """Compare *resources* with state and return the changes needed.

        With *refresh*, tracked objects are re-read first and the refreshed
        state is written back. With *destroy*, every tracked object is
        scheduled for deletion.
        """
        logger.info(
            "Planning %d resources (destroy=%s refresh=%s)", len(resources), destroy, refresh
        )
        with StateLock(self._state_path) if refresh else contextlib.nullcontext():
            state = self._open_state()
            if refresh and self._sync(state):
                state.commit(self._state_path)

        desired = self._index(resources)
        tracked = set(state.resources)
        if destroy:
            changes = self._removals(state, tracked)
        else:
            self._check(desired, state)
            order = topological_order(desired, {a: r.depends_on for a, r in desired.items()})
            changes = [self._change_for(desired[a], state) for a in order]
            changes += self._removals(state, tracked - set(desired))

        return Plan(
            workspace=self._workspace,
            destroy=destroy,
            state_serial=state.serial,
            changes=changes,
        )

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        """Run every actionable change of *plan* in order.

        State is committed after each change, so a failure part-way leaves
        the completed changes recorded. Failures surface as
        :class:`ApplyError`; Ctrl-C surfaces as :class:`ApplyCanceled`.
        """
        with StateLock(self._state_path):
            state = self._open_state()
            if state.serial != plan.state_serial:
                raise StalePlanError(
                    f"state serial is {state.serial} but the plan was made at "
                    f"{plan.state_serial}; re-run plan"
                )

            ctx = self._context()
            applied: list[ResourceChange] = []
            pending = plan.actionable
            logger.info("Applying %d changes", len(pending))
            for change in pending:
                if progress:
                    progress(change, "start")
                try:
                    run_change(change, ctx=ctx, state=state, registry=self._registry)
                except IncompleteCreateError as e:
                    state.commit(self._state_path)
                    applied.append(change)
                    if e.interrupted:
                        raise ApplyCanceled(str(e)) from e
                    raise ApplyError(applied=applied, address=change.address, message=str(e)) from e
                except KeyboardInterrupt as e:
                    raise ApplyCanceled(f"interrupted while applying {change.address}") from e
                except Exception as e:
                    raise ApplyError(applied=applied, address=change.address, message=str(e)) from e

                state.commit(self._state_path)
                applied.append(change)
                if progress:
                    progress(change, "done")

            return ApplyResult(applied=applied)
