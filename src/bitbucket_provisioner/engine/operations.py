"""Carry out a single planned change and record the outcome in state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bitbucket_provisioner.core.state import ResourceInstance
from bitbucket_provisioner.engine.errors import IncompleteCreateError
from bitbucket_provisioner.engine.types import Action

if TYPE_CHECKING:
    from bitbucket_provisioner.core.state import State
    from bitbucket_provisioner.engine.handlers import EngineContext
    from bitbucket_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
    from bitbucket_provisioner.engine.types import ResourceChange
    from bitbucket_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)


def _rebuild(change: ResourceChange, reg: ResourceTypeRegistration) -> Resource:
    if change.desired is None:
        raise ValueError(f"{change.address}: {change.action.value} without desired attributes")
    resource = reg.model.model_validate(change.desired)
    if resource.address != change.address:
        raise ValueError(f"{change.address}: desired attributes describe {resource.address}")
    return resource


def run_change(
    change: ResourceChange,
    *,
    ctx: EngineContext,
    state: State,
    registry: ResourceTypeRegistry,
) -> None:
    """Apply *change* through its handler and update *state* to match.

    When a handler reports an :class:`IncompleteCreateError`, the object it
    created is still recorded before the error propagates.
    """
    reg = registry.get(change.resource_type)
    handler = reg.handler

    if change.action is Action.DELETE:
        handler.delete(ctx, state.resources[change.address])
        del state.resources[change.address]
    elif change.action is Action.CREATE:
        desired = _rebuild(change, reg)
        inst = ResourceInstance(
            address=change.address, resource_type=change.resource_type, name=desired.name
        )
        try:
            attrs = handler.create(ctx, desired)
        except IncompleteCreateError as e:
            inst.record(e.attributes, dependencies=desired.depends_on)
            state.resources[change.address] = inst
            raise
        inst.record(attrs, dependencies=desired.depends_on)
        state.resources[change.address] = inst
    elif change.action is Action.UPDATE:
        desired = _rebuild(change, reg)
        inst = state.resources[change.address]
        try:
            attrs = handler.update(ctx, desired, inst)
        except IncompleteCreateError as e:
            # A replacement deleted the old object and created a new one.
            inst.record(e.attributes, dependencies=desired.depends_on)
            raise
        inst.record(attrs, dependencies=desired.depends_on)
    else:
        raise ValueError(f"{change.address}: nothing to run for {change.action.value}")

    logger.debug("%s %s done", change.action.value, change.address)
