"""Deployment variable handler implementing CRUD via the Bitbucket REST API."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from pydantic import BaseModel, Field

from bitbucket_provisioner.engine.errors import (
    IncompleteCreateError,
    ResourceNotFoundError,
    UnexpectedStatusError,
)
from bitbucket_provisioner.engine.handlers import ResourceHandler
from bitbucket_provisioner.resources.deployment_variable import (
    InvalidDeploymentIdError,
    parse_deployment_id,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    import requests

    from bitbucket_provisioner.core.client import BitbucketClient
    from bitbucket_provisioner.core.state import ResourceInstance
    from bitbucket_provisioner.engine.handlers import EngineContext
    from bitbucket_provisioner.resources.deployment_variable import DeploymentVariableResource

logger = logging.getLogger(__name__)


class DeploymentVariable(BaseModel):
    """Wire representation of a deployment variable.

    Bitbucket omits ``value`` for secured variables, hence the default.
    """

    key: str
    value: str = ""
    uuid: str | None = None
    secured: bool = False


class PaginatedDeploymentVariables(BaseModel):
    """Paginated listing envelope returned by the variables collection."""

    values: list[DeploymentVariable] = Field(default_factory=list)
    page: int | None = None
    size: int | None = None
    pagelen: int | None = None
    next: str | None = None


def variable_from_resource(resource: DeploymentVariableResource) -> DeploymentVariable:
    """Project the API payload out of a desired resource (no uuid, no deployment)."""
    return DeploymentVariable(key=resource.key, value=resource.value, secured=resource.secured)


def variables_path(repository: str, deployment: str) -> str:
    return (
        f"2.0/repositories/{repository}/deployments_config/environments/{deployment}/variables"
    )


def variable_path(repository: str, deployment: str, uuid: str) -> str:
    return f"{variables_path(repository, deployment)}/{uuid}"


def _payload(resource: DeploymentVariableResource) -> dict[str, Any]:
    return variable_from_resource(resource).model_dump(exclude_none=True)


def _unconfirmed(resource: DeploymentVariableResource, uuid: str) -> DeploymentVariable:
    # Desired fields plus the server identity, used when a read-back is unavailable.
    return variable_from_resource(resource).model_copy(update={"uuid": uuid})


def _attrs(name: str, deployment: str, variable: DeploymentVariable) -> dict[str, Any]:
    return {
        "name": name,
        "deployment": deployment,
        "key": variable.key,
        "value": variable.value,
        "secured": variable.secured,
        "uuid": variable.uuid,
    }


class DeploymentVariableHandler(ResourceHandler["DeploymentVariableResource"]):
    """CRUD handler for Bitbucket deployment variables.

    Args:
        create_timeout: How long to wait, in seconds, for a freshly created
            variable to show up in the listing before giving up.
        poll_interval: Delay between listing polls after a create.
        strict_status: Raise :class:`UnexpectedStatusError` on unexpected
            status codes from read/update/delete instead of logging and
            keeping the prior attributes.
    """

    def __init__(
        self,
        *,
        create_timeout: float = 5.0,
        poll_interval: float = 1.0,
        strict_status: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.create_timeout = create_timeout
        self.poll_interval = poll_interval
        self.strict_status = strict_status
        self._sleep = sleep
        self._clock = clock

    def _unexpected(
        self, method: str, path: str, response: requests.Response, *, strict: bool | None = None
    ) -> None:
        if self.strict_status if strict is None else strict:
            raise UnexpectedStatusError(method, path, response.status_code, response.text)
        logger.warning(
            "%s %s returned status %d; leaving state unchanged",
            method,
            path,
            response.status_code,
        )

    def _list_variables(
        self, client: BitbucketClient, repository: str, deployment: str
    ) -> list[DeploymentVariable] | None:
        """Fetch every variable of a deployment, following ``next`` links.

        Returns an empty list when the deployment has no variables or does
        not exist, and None when any page was answered with a status that
        says nothing about the variable (non-strict mode only). Only the
        first page treats 404 as "no variables".
        """
        path = variables_path(repository, deployment)
        url: str | None = path
        variables: list[DeploymentVariable] = []
        while url is not None:
            response = client.get(url)
            if response.status_code == 404 and url == path:
                return []
            if response.status_code != 200:
                self._unexpected("GET", url, response)
                return None

            page = PaginatedDeploymentVariables.model_validate_json(response.content)
            if (page.size or 0) < 1:
                return []
            variables.extend(page.values)
            url = page.next
        return variables

    def _lookup(
        self, client: BitbucketClient, deployment_id: str, uuid: str
    ) -> tuple[bool, DeploymentVariable | None]:
        """Find a variable by uuid. Returns ``(known, variable)``."""
        repository, deployment = parse_deployment_id(deployment_id)
        logger.debug("Looking up deployment variable %s", quote(uuid))
        variables = self._list_variables(client, repository, deployment)
        if variables is None:
            return False, None
        return True, next((v for v in variables if v.uuid == uuid), None)

    def validate(self, ctx: EngineContext, desired: DeploymentVariableResource) -> list[str]:
        _ = ctx
        try:
            parse_deployment_id(desired.deployment)
        except InvalidDeploymentIdError as e:
            return [f"{desired.address}: {e}"]
        return []

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        uuid = prior.attributes.get("uuid")
        deployment_id = prior.attributes.get("deployment")
        if not uuid or not deployment_id:
            return None

        known, variable = self._lookup(ctx.provider.client, deployment_id, uuid)
        if not known:
            return dict(prior.attributes)
        if variable is None:
            logger.info("Deployment variable %s (%s) no longer exists", prior.address, uuid)
            return None
        return _attrs(prior.name, deployment_id, variable)

    def _wait_until_visible(
        self,
        client: BitbucketClient,
        desired: DeploymentVariableResource,
        uuid: str,
    ) -> dict[str, Any]:
        deadline = self._clock() + self.create_timeout
        while True:
            self._sleep(self.poll_interval)
            known, variable = self._lookup(client, desired.deployment, uuid)
            if known and variable is not None:
                return _attrs(desired.name, desired.deployment, variable)
            if self._clock() >= deadline:
                break

        logger.warning(
            "%s (%s) was created but is not listed after %.1fs; storing unconfirmed attributes",
            desired.address,
            uuid,
            self.create_timeout,
        )
        return _attrs(desired.name, desired.deployment, _unconfirmed(desired, uuid))

    def create(self, ctx: EngineContext, desired: DeploymentVariableResource) -> dict[str, Any]:
        client = ctx.provider.client
        repository, deployment = desired.target
        path = variables_path(repository, deployment)

        response = client.post(path, _payload(desired))
        if response.status_code not in (200, 201):
            raise UnexpectedStatusError("POST", path, response.status_code, response.text)

        created = DeploymentVariable.model_validate_json(response.content)
        if not created.uuid:
            raise UnexpectedStatusError("POST", path, response.status_code, "response has no uuid")
        logger.info("Created %s (%s)", desired.address, created.uuid)

        try:
            return self._wait_until_visible(client, desired, created.uuid)
        except (Exception, KeyboardInterrupt) as e:
            raise IncompleteCreateError(
                desired.address,
                _attrs(desired.name, desired.deployment, _unconfirmed(desired, created.uuid)),
                reason=str(e) or type(e).__name__,
                interrupted=isinstance(e, KeyboardInterrupt),
            ) from e

    def update(
        self,
        ctx: EngineContext,
        desired: DeploymentVariableResource,
        prior: ResourceInstance,
    ) -> dict[str, Any]:
        if prior.attributes.get("deployment") != desired.deployment:
            logger.info("%s moved to another deployment; replacing", desired.address)
            # The old variable must be gone before its replacement is created.
            self._delete(ctx, prior, strict=True)
            return self.create(ctx, desired)

        client = ctx.provider.client
        uuid = prior.attributes["uuid"]
        repository, deployment = desired.target
        path = variable_path(repository, deployment, uuid)

        response = client.put(path, _payload(desired))
        if response.status_code != 200:
            self._unexpected("PUT", path, response)
            return dict(prior.attributes)

        known, variable = self._lookup(client, desired.deployment, uuid)
        if not known:
            return _attrs(desired.name, desired.deployment, _unconfirmed(desired, uuid))
        if variable is None:
            raise ResourceNotFoundError(desired.address, uuid)
        return _attrs(desired.name, desired.deployment, variable)

    def _delete(
        self, ctx: EngineContext, prior: ResourceInstance, *, strict: bool | None = None
    ) -> None:
        repository, deployment = parse_deployment_id(prior.attributes["deployment"])
        path = variable_path(repository, deployment, prior.attributes["uuid"])

        response = ctx.provider.client.delete(path)
        if response.status_code not in (200, 204, 404):
            self._unexpected("DELETE", path, response, strict=strict)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        self._delete(ctx, prior)
