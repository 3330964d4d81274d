"""Plan/apply engine and the Bitbucket resource handlers it drives."""

from bitbucket_provisioner.engine.deployment_variable_handler import DeploymentVariableHandler
from bitbucket_provisioner.engine.engine import BitbucketEngine, attribute_diff
from bitbucket_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    EngineError,
    HandlerError,
    IncompleteCreateError,
    ResourceNotFoundError,
    StalePlanError,
    StateLockError,
    StateWorkspaceMismatchError,
    UnexpectedStatusError,
    UnknownResourceTypeError,
    ValidationError,
)
from bitbucket_provisioner.engine.handlers import EngineContext, ResourceHandler
from bitbucket_provisioner.engine.registry import ResourceTypeRegistration, ResourceTypeRegistry
from bitbucket_provisioner.engine.types import Action, ApplyResult, Plan, ResourceChange

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "BitbucketEngine",
    "DependencyCycleError",
    "DeploymentVariableHandler",
    "DuplicateAddressError",
    "EngineContext",
    "EngineError",
    "HandlerError",
    "IncompleteCreateError",
    "Plan",
    "ResourceChange",
    "ResourceHandler",
    "ResourceNotFoundError",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateLockError",
    "StateWorkspaceMismatchError",
    "UnexpectedStatusError",
    "UnknownResourceTypeError",
    "ValidationError",
    "attribute_diff",
]
