from typing import ClassVar

import pytest

from bitbucket_provisioner.config.registry import default_registry
from bitbucket_provisioner.config.schema import ProviderConfig
from bitbucket_provisioner.engine.deployment_variable_handler import DeploymentVariableHandler
from bitbucket_provisioner.engine.errors import UnknownResourceTypeError
from bitbucket_provisioner.engine.handlers import ResourceHandler
from bitbucket_provisioner.engine.registry import ResourceTypeRegistry
from bitbucket_provisioner.resources.base import Resource
from bitbucket_provisioner.resources.deployment_variable import DeploymentVariableResource


class DummyResource(Resource):
    resource_type: ClassVar[str] = "dummy"


def test_register_and_get() -> None:
    registry = ResourceTypeRegistry()
    handler: ResourceHandler[DummyResource] = ResourceHandler()
    registry.register(DummyResource, handler)

    reg = registry.get("dummy")

    assert reg.model is DummyResource
    assert registry.handler("dummy") is handler
    assert "dummy" in registry
    assert list(registry) == ["dummy"]


def test_duplicate_registration_rejected() -> None:
    registry = ResourceTypeRegistry()
    registry.register(DummyResource, ResourceHandler())

    with pytest.raises(ValueError, match="already registered"):
        registry.register(DummyResource, ResourceHandler())


def test_unknown_type() -> None:
    with pytest.raises(UnknownResourceTypeError):
        ResourceTypeRegistry().get("nope")


def test_default_registry_uses_handler_defaults() -> None:
    handler = default_registry().handler(DeploymentVariableResource.resource_type)

    assert isinstance(handler, DeploymentVariableHandler)
    assert handler.create_timeout == 5.0
    assert handler.poll_interval == 1.0
    assert handler.strict_status is False


def test_default_registry_applies_provider_settings() -> None:
    provider = ProviderConfig(
        workspace="acme", create_timeout=20, poll_interval=2, strict_status=True
    )

    handler = default_registry(provider).handler("bitbucket_deployment_variable")

    assert isinstance(handler, DeploymentVariableHandler)
    assert handler.create_timeout == 20
    assert handler.poll_interval == 2
    assert handler.strict_status is True


def test_register_returns_registry_for_chaining() -> None:
    registry = ResourceTypeRegistry()

    assert registry.register(DummyResource, ResourceHandler()) is registry


def test_model_without_resource_type_rejected() -> None:
    class Untyped(Resource):
        pass

    with pytest.raises(ValueError, match="does not set resource_type"):
        ResourceTypeRegistry().register(Untyped, ResourceHandler())
