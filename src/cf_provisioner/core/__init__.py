"""Client access and the state file."""

from cf_provisioner.core.provider import CloudflareProvider, classify_error
from cf_provisioner.core.state import ResourceInstance, State

__all__ = ["CloudflareProvider", "ResourceInstance", "State", "classify_error"]
