"""Shared fixtures for e2e tests against a live Bitbucket workspace.

Required environment:

- ``BITBUCKET_WORKSPACE``
- ``BITBUCKET_ACCESS_TOKEN``, or ``BITBUCKET_USERNAME`` + ``BITBUCKET_APP_PASSWORD``
- ``BITBUCKET_E2E_DEPLOYMENT``: a throwaway ``<repository>:<deployment>`` id,
  e.g. ``acme/sandbox:{1f0c...}``. Its variables are created and deleted.
"""

from __future__ import annotations

import contextlib
import os
from typing import TYPE_CHECKING, Any

import pytest
import requests

from bitbucket_provisioner.config import provider_from_config
from bitbucket_provisioner.config.loader import ConfigError
from bitbucket_provisioner.config.schema import Config, ProviderConfig

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path

    from bitbucket_provisioner.core import BitbucketProvider


@pytest.fixture(scope="session")
def e2e_deployment() -> str:
    deployment = os.environ.get("BITBUCKET_E2E_DEPLOYMENT")
    if not deployment:
        pytest.skip("No deployment configured: set BITBUCKET_E2E_DEPLOYMENT")
    return deployment


@pytest.fixture(scope="session")
def provider_config() -> ProviderConfig:
    if not os.environ.get("BITBUCKET_WORKSPACE"):
        pytest.skip("BITBUCKET_WORKSPACE is not set")
    return ProviderConfig()  # type: ignore[call-arg]


@pytest.fixture(scope="session")
def provider(provider_config: ProviderConfig) -> BitbucketProvider:
    try:
        return provider_from_config(provider_config)
    except ConfigError as exc:
        pytest.skip(str(exc))
    return None  # type: ignore[return-value]  # unreachable; pytest.skip raises


@pytest.fixture()
def cleanup_variables(
    provider: BitbucketProvider, e2e_deployment: str
) -> Generator[list[str]]:
    """Collect keys created by a test; any leftovers are deleted afterwards."""
    from bitbucket_provisioner.engine.deployment_variable_handler import (
        PaginatedDeploymentVariables,
        variable_path,
        variables_path,
    )
    from bitbucket_provisioner.resources.deployment_variable import parse_deployment_id

    keys: list[str] = []
    yield keys

    repository, deployment = parse_deployment_id(e2e_deployment)
    client = provider.client
    response = client.get(variables_path(repository, deployment))
    if response.status_code != 200:
        return
    page = PaginatedDeploymentVariables.model_validate_json(response.content)
    for variable in page.values:
        if variable.key in keys and variable.uuid:
            with contextlib.suppress(requests.RequestException):
                client.delete(variable_path(repository, deployment, variable.uuid))


@pytest.fixture()
def make_config(provider_config: ProviderConfig, tmp_path: Path) -> Callable[..., Config]:
    def _make(*, deployment_variables: list[Any] | None = None) -> Config:
        return Config(
            provider=provider_config,
            state_path=tmp_path / ".state.json",
            deployment_variables=deployment_variables or [],
        )

    return _make


def assert_changes(plan_obj: Any, expected: dict[str, str]) -> None:
    """Assert that a plan contains exactly the expected actions.

    *expected* maps resource names to Action values (e.g. ``{"db_url": "create"}``).
    """
    from bitbucket_provisioner.engine.types import Action

    actual = {c.address.split(".")[-1]: c.action for c in plan_obj.changes}
    normalized = {
        name: (Action(action) if isinstance(action, str) else action)
        for name, action in expected.items()
    }
    assert actual == normalized, (
        f"Plan changes mismatch.\nExpected: {normalized}\nActual:   {actual}"
    )
