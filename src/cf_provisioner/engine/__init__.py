"""Plan and apply engine for Cloudflare resources."""

from cf_provisioner.engine.engine import CloudflareEngine
from cf_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    EmptyResponseError,
    EngineError,
    InvalidAddressError,
    MalformedIdError,
    NotFoundError,
    ReconcileError,
    RemoteError,
    ResourceAlreadyManagedError,
    StalePlanError,
    StateAccountMismatchError,
    StateLockError,
    UnknownResourceTypeError,
    ValidationError,
)
from cf_provisioner.engine.handlers import EngineContext, ImportedResource, ResourceHandler
from cf_provisioner.engine.hyperdrive_handler import HyperdriveConfigHandler
from cf_provisioner.engine.pages_project_handler import PagesProjectHandler
from cf_provisioner.engine.reconciler import ResourceReconciler, parse_import_id
from cf_provisioner.engine.registry import ResourceTypeRegistry, builtin_registry
from cf_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange

__all__ = [
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "CloudflareEngine",
    "DependencyCycleError",
    "DuplicateAddressError",
    "EmptyResponseError",
    "EngineContext",
    "EngineError",
    "HyperdriveConfigHandler",
    "ImportedResource",
    "InvalidAddressError",
    "MalformedIdError",
    "NotFoundError",
    "PagesProjectHandler",
    "Plan",
    "PlanMetadata",
    "ReconcileError",
    "RemoteError",
    "ResourceAlreadyManagedError",
    "ResourceChange",
    "ResourceHandler",
    "ResourceReconciler",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateAccountMismatchError",
    "StateLockError",
    "UnknownResourceTypeError",
    "ValidationError",
    "builtin_registry",
    "parse_import_id",
]
