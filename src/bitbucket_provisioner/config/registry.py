"""Registry wiring for the resource types this package ships."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bitbucket_provisioner.engine.deployment_variable_handler import DeploymentVariableHandler
from bitbucket_provisioner.engine.registry import ResourceTypeRegistry
from bitbucket_provisioner.resources.deployment_variable import DeploymentVariableResource

if TYPE_CHECKING:
    from bitbucket_provisioner.config.schema import ProviderConfig


def default_registry(provider: ProviderConfig | None = None) -> ResourceTypeRegistry:
    """A new registry with every built-in resource type.

    Post-create polling and ``strict_status`` come from *provider*; without
    one the handler defaults apply.
    """
    tuning = (
        {}
        if provider is None
        else {
            "create_timeout": provider.create_timeout,
            "poll_interval": provider.poll_interval,
            "strict_status": provider.strict_status,
        }
    )
    return ResourceTypeRegistry().register(
        DeploymentVariableResource, DeploymentVariableHandler(**tuning)
    )
