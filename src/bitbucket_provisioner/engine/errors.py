"""Exceptions raised while planning and applying."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bitbucket_provisioner.engine.types import ApplyResult

if TYPE_CHECKING:
    from bitbucket_provisioner.engine.types import ResourceChange


class EngineError(Exception):
    """Root of every error the engine raises on purpose."""


class UnknownResourceTypeError(EngineError):
    def __init__(self, resource_type: str) -> None:
        super().__init__(f"No handler registered for resource type {resource_type!r}")
        self.resource_type = resource_type


class DuplicateAddressError(EngineError):
    def __init__(self, address: str) -> None:
        super().__init__(f"{address} is declared more than once")
        self.address = address


class DependencyCycleError(EngineError):
    def __init__(self, addresses: list[str]) -> None:
        cycle = " -> ".join(addresses) if addresses else "unknown"
        super().__init__(f"depends_on forms a cycle: {cycle}")
        self.addresses = addresses


class StateWorkspaceMismatchError(EngineError):
    """The state file on disk was written for another workspace."""

    def __init__(self, expected: str, got: str) -> None:
        super().__init__(f"State file belongs to workspace {got!r}, not {expected!r}")
        self.expected = expected
        self.got = got


class StalePlanError(EngineError):
    """State was written by someone else between plan and apply."""


class StateLockError(EngineError):
    pass


class ValidationError(EngineError):
    """Desired resources that cannot be planned. ``errors`` lists each problem."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class HandlerError(EngineError):
    """Raised by resource handlers."""


class UnexpectedStatusError(HandlerError):
    """Bitbucket answered with a status code the handler cannot interpret."""

    def __init__(self, method: str, path: str, status_code: int, body: str = "") -> None:
        detail = f": {body}" if body else ""
        super().__init__(f"{method} {path} -> HTTP {status_code}{detail}")
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body


class ResourceNotFoundError(HandlerError):
    def __init__(self, address: str, identity: str) -> None:
        super().__init__(f"{address} ({identity}) vanished while it was being updated")
        self.address = address
        self.identity = identity


class IncompleteCreateError(HandlerError):
    """A create went through but its read-back failed or was interrupted.

    ``attributes`` describe the object that now exists in Bitbucket, so it
    can be tracked before the failure is reported. ``interrupted`` is set
    when the read-back was cut short by Ctrl-C.
    """

    def __init__(
        self,
        address: str,
        attributes: dict[str, Any],
        *,
        reason: str,
        interrupted: bool = False,
    ) -> None:
        super().__init__(f"{address} was created but could not be confirmed: {reason}")
        self.address = address
        self.attributes = attributes
        self.interrupted = interrupted


class ApplyError(EngineError):
    """An apply stopped part-way.

    ``result`` holds the changes that completed before ``address`` failed;
    the underlying exception is chained as ``__cause__``.
    """

    def __init__(self, *, applied: list[ResourceChange], address: str, message: str) -> None:
        self.result = ApplyResult(applied=applied)
        self.address = address
        super().__init__(f"{address}: {message}")


class ApplyCanceled(EngineError):
    """The user interrupted an apply."""
