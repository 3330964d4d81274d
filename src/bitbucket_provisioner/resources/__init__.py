"""Bitbucket resource definitions."""

from bitbucket_provisioner.resources.base import Resource
from bitbucket_provisioner.resources.deployment_variable import (
    DeploymentVariableResource,
    InvalidDeploymentIdError,
    parse_deployment_id,
)

__all__ = [
    "DeploymentVariableResource",
    "InvalidDeploymentIdError",
    "Resource",
    "parse_deployment_id",
]
