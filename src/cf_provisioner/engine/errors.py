"""Exceptions raised while planning, applying and reconciling."""

from __future__ import annotations

from typing import Any

from cf_provisioner.engine.types import ApplyResult


class EngineError(Exception):
    """Root of every error the engine raises on purpose."""


class UnknownResourceTypeError(EngineError):
    def __init__(self, resource_type: str) -> None:
        super().__init__(f"Unknown resource type: {resource_type}")
        self.resource_type = resource_type


class _AddressError(EngineError):
    template = "{address}"

    def __init__(self, address: str) -> None:
        super().__init__(self.template.format(address=address))
        self.address = address


class DuplicateAddressError(_AddressError):
    template = "Duplicate resource address: {address}"


class InvalidAddressError(_AddressError):
    template = "Invalid resource address '{address}': expected '<resource_type>.<label>'"


class ResourceAlreadyManagedError(_AddressError):
    template = "Resource already managed: {address}"


class DependencyCycleError(EngineError):
    def __init__(self, addresses: list[str]) -> None:
        suffix = f": {', '.join(addresses)}" if addresses else ""
        super().__init__(f"Dependency cycle detected{suffix}")
        self.addresses = addresses


class StateAccountMismatchError(EngineError):
    """State, a plan or an import ID names a different account than configured."""

    def __init__(self, expected: str, got: str) -> None:
        super().__init__(f"Account mismatch: expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class StalePlanError(EngineError):
    """The state file has moved on since the plan was computed."""


class StateLockError(EngineError):
    """Another run holds the state lock."""


class ValidationError(EngineError):
    """Declared resources are inconsistent; ``errors`` lists every problem found."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


class ApplyError(EngineError):
    """An apply stopped part-way.

    ``result`` holds the changes that were applied (and committed to state)
    before the failing one; the underlying error is the ``__cause__``.
    """

    def __init__(self, *, applied: list[Any], address: str, message: str) -> None:
        super().__init__(f"Apply failed on {address}: {message}")
        self.result = ApplyResult(applied=applied)
        self.address = address


class ApplyCanceled(EngineError):
    """The user interrupted an apply."""


# Reconciler errors

_PROGRESSIVE = {"create": "creating", "read": "reading", "update": "updating", "delete": "deleting"}


class ReconcileError(EngineError):
    """A reconciler call failed; says which call and on which object."""

    def __init__(self, message: str, *, operation: str, resource_type: str, name: str) -> None:
        super().__init__(message)
        self.operation = operation
        self.resource_type = resource_type
        self.name = name


class RemoteError(ReconcileError):
    """The Cloudflare API rejected or failed a call.

    ``transient`` marks connection failures and HTTP 408/429/5xx, which a
    later run may get past. Nothing here retries on its own.
    """

    def __init__(
        self,
        *,
        operation: str,
        resource_type: str,
        name: str,
        cause: BaseException,
        transient: bool = False,
    ) -> None:
        verb = _PROGRESSIVE.get(operation, operation)
        super().__init__(
            f"error {verb} {resource_type} {name!r}: {cause}",
            operation=operation,
            resource_type=resource_type,
            name=name,
        )
        self.transient = transient


class NotFoundError(ReconcileError):
    def __init__(self, *, operation: str, resource_type: str, name: str) -> None:
        super().__init__(
            f"{resource_type} {name!r} no longer exists",
            operation=operation,
            resource_type=resource_type,
            name=name,
        )


class EmptyResponseError(ReconcileError):
    """The call succeeded but the response carried no identity."""

    def __init__(self, *, operation: str, resource_type: str, name: str) -> None:
        super().__init__(
            f"failed to find id in {operation} response for {resource_type} {name!r}; "
            "resource was empty",
            operation=operation,
            resource_type=resource_type,
            name=name,
        )


class MalformedIdError(EngineError):
    def __init__(self, value: str, expected: str) -> None:
        super().__init__(f'invalid id ("{value}") specified, should be in format "{expected}"')
        self.value = value
        self.expected = expected
