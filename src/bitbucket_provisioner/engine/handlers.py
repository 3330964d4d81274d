"""The interface every resource handler implements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from bitbucket_provisioner.resources.base import Resource

if TYPE_CHECKING:
    from bitbucket_provisioner.core import BitbucketProvider
    from bitbucket_provisioner.core.state import ResourceInstance

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    """Handed to every handler call; ``provider.client`` is the only way out to the API."""

    provider: BitbucketProvider
    workspace: str


class ResourceHandler(Generic[R]):
    """Maps one resource type onto Bitbucket API calls.

    ``create`` and ``update`` return the attributes to record in state,
    ``read`` returns None once the object is gone.
    """

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        """Problems with *desired* that should stop the plan. Empty when fine."""
        _ = ctx, desired
        return []

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        raise NotImplementedError

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        raise NotImplementedError

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        raise NotImplementedError
