"""Declarative field markers for resource models.

Three markers attach to Pydantic fields via ``Annotated``:

- ``ApiField``: field maps to a (dot-separated) path in the Cloudflare request body
- ``Sensitive``: field value must never be rendered in plan output
- ``WriteOnly``: field is accepted by the API but never returned on read

Helper functions introspect these markers at runtime to automate request
building and to tell reconcilers which values to carry forward from state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

M = TypeVar("M")


# ── Marker dataclasses ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ApiField:
    """Field maps to a path in the Cloudflare API request body.

    ``path`` is dot-separated, e.g. ``"origin.password"`` → ``body["origin"]["password"]``.
    """

    path: str


@dataclass(frozen=True, slots=True)
class Sensitive:
    """Field holds a secret; plan output shows a placeholder instead."""


@dataclass(frozen=True, slots=True)
class WriteOnly:
    """Field is never echoed back by the API; state keeps the last applied value."""


# ── Shared introspection primitives ─────────────────────────────────


def _find_marker(field_info: FieldInfo, marker_type: type[M]) -> M | None:
    """Return the first marker of *marker_type* on a field, or ``None``."""
    return next((m for m in field_info.metadata if isinstance(m, marker_type)), None)


def _iter_marked_fields(
    model_or_cls: Any,
    marker_type: type[M],
) -> list[tuple[str, FieldInfo, M]]:
    """Return ``(field_name, field_info, marker)`` for every field carrying *marker_type*."""
    cls = model_or_cls if isinstance(model_or_cls, type) else type(model_or_cls)
    return [
        (name, fi, marker)
        for name, fi in cls.model_fields.items()
        if (marker := _find_marker(fi, marker_type)) is not None
    ]


def _set_path(body: dict[str, Any], path: str, value: Any) -> None:
    """Write *value* at a dot-separated path, merging into existing dicts."""
    *parents, leaf = path.split(".")
    current = body
    for segment in parents:
        current = current.setdefault(segment, {})
    existing = current.get(leaf)
    if isinstance(existing, dict) and isinstance(value, dict):
        existing.update(value)
    else:
        current[leaf] = value


def _project(value: Any) -> Any:
    """Recursively drop absent (``None``) values from models, dicts, and lists."""
    if isinstance(value, BaseModel):
        return build_request(value)
    if isinstance(value, dict):
        return {k: _project(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_project(v) for v in value]
    return value


# ── Public helpers ──────────────────────────────────────────────────


def build_request(model: BaseModel) -> dict[str, Any]:
    """Build an API request body from *model*, projecting only present fields.

    ``None`` means "absent": the key is omitted so the remote applies its own
    default (on create) or keeps its current value (on update). Zero values
    such as ``0``, ``""`` and ``False`` are present and are sent as-is.
    Names listed in the model's ``local_fields`` never leave the process.
    """
    local_fields = getattr(model, "local_fields", frozenset())
    body: dict[str, Any] = {}
    for name, fi in type(model).model_fields.items():
        if name in local_fields:
            continue
        value = getattr(model, name)
        if value is None:
            continue
        marker = _find_marker(fi, ApiField)
        _set_path(body, marker.path if marker else name, _project(value))
    return body


def collect_sensitive_fields(resource_or_cls: Any) -> list[str]:
    """Names of fields carrying the ``Sensitive`` marker."""
    return [name for name, _, _ in _iter_marked_fields(resource_or_cls, Sensitive)]


def collect_write_only_fields(resource_or_cls: Any) -> list[str]:
    """Names of fields carrying the ``WriteOnly`` marker."""
    return [name for name, _, _ in _iter_marked_fields(resource_or_cls, WriteOnly)]
