"""Deployment variable resource model."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field, field_validator

from bitbucket_provisioner.resources.base import Resource


class InvalidDeploymentIdError(ValueError):
    """Raised when a composite deployment identifier cannot be parsed."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid deployment id {value!r}: expected '<repository>:<deployment>'"
        )
        self.value = value


def parse_deployment_id(value: str) -> tuple[str, str]:
    """Split ``"<repository>:<deployment>"`` on the first colon.

    The deployment part may itself contain colons:
    ``parse_deployment_id("a:b:c") == ("a", "b:c")``.
    """
    repository, sep, deployment = value.partition(":")
    if not sep or not repository or not deployment:
        raise InvalidDeploymentIdError(value)
    return repository, deployment


class DeploymentVariableResource(Resource):
    """A key/value variable scoped to one deployment environment.

    ``deployment`` is a composite identifier ``"<repository>:<deployment>"``,
    for example ``"acme/api:{5b1c...}"``. When ``secured`` is true the value
    is stored as a secret by Bitbucket and is not returned on read.
    """

    resource_type: ClassVar[str] = "bitbucket_deployment_variable"

    key: str = Field(min_length=1)
    value: str
    secured: bool = False
    deployment: str

    @field_validator("deployment")
    @classmethod
    def _check_deployment(cls, v: str) -> str:
        parse_deployment_id(v)
        return v

    @property
    def target(self) -> tuple[str, str]:
        """``(repository, deployment)`` addressed by this variable."""
        return parse_deployment_id(self.deployment)
