"""Which model and handler serve each resource type."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

from bitbucket_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bitbucket_provisioner.engine.handlers import ResourceHandler
    from bitbucket_provisioner.resources.base import Resource


class ResourceTypeRegistration(NamedTuple):
    resource_type: str
    model: type[Resource]
    handler: ResourceHandler[Any]


class ResourceTypeRegistry:
    """Dispatch table from ``resource_type`` to its model and handler."""

    def __init__(self) -> None:
        self._entries: dict[str, ResourceTypeRegistration] = {}

    def register(
        self, model: type[Resource], handler: ResourceHandler[Any]
    ) -> ResourceTypeRegistry:
        """Add *model* with its *handler*; returns the registry for chaining."""
        resource_type = getattr(model, "resource_type", "")
        if not resource_type:
            raise ValueError(f"{model.__name__} does not set resource_type")
        if resource_type in self._entries:
            raise ValueError(f"{resource_type} is already registered")
        self._entries[resource_type] = ResourceTypeRegistration(resource_type, model, handler)
        return self

    def get(self, resource_type: str) -> ResourceTypeRegistration:
        entry = self._entries.get(resource_type)
        if entry is None:
            raise UnknownResourceTypeError(resource_type)
        return entry

    def handler(self, resource_type: str) -> ResourceHandler[Any]:
        return self.get(resource_type).handler

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))
