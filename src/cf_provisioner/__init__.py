"""Terraform-style infrastructure-as-code for Cloudflare."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cf-provisioner")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
