"""Isolation guard - pure functions applied at the data-access boundary.

Every read that leaves a request passes through ``filter_by_organization`` or
``access_allowed``; every write passes through ``ensure_organization_context``.
Cache entries are keyed with ``namespaced_cache_key`` so two tenants sharing a
process-wide cache can never read each other's entries.

Items may be mappings (``item["organization_id"]``) or objects exposing an
``organization_id`` attribute (ORM rows, pydantic models, dataclasses).
"""

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel

from backend.app.models.common import ORGANIZATION_FIELD, ScopedTo, Unscoped, scope_of

T = TypeVar("T")


class MissingOrganizationContextError(RuntimeError):
    """Raised when tenant-owned data would be written or keyed without an organization."""


def access_allowed(item: Any, organization_id: str | None, *, allow_unscoped: bool = True) -> bool:
    """Return True if a request resolved to ``organization_id`` may see ``item``.

    No organization means no access, whatever the item. Unscoped items are
    visible to every organization unless ``allow_unscoped`` is False.
    """
    if not organization_id:
        return False

    scope = scope_of(item)
    if isinstance(scope, Unscoped):
        return allow_unscoped
    return scope.organization_id == organization_id


def filter_by_organization(
    items: Iterable[T], organization_id: str | None, *, allow_unscoped: bool = True
) -> list[T]:
    """Keep only the items visible to ``organization_id``, preserving order.

    Returns a new list; the input is never mutated. A missing
    ``organization_id`` yields an empty list.
    """
    if not organization_id:
        return []
    return [
        item
        for item in items
        if access_allowed(item, organization_id, allow_unscoped=allow_unscoped)
    ]


def ensure_organization_context(data: T, organization_id: str | None) -> T:
    """Return a shallow copy of ``data`` owned by ``organization_id``.

    Any caller-supplied ``organization_id`` is overwritten.

    Raises:
        MissingOrganizationContextError: If ``organization_id`` is empty.
        TypeError: If ``data`` is not a mapping, pydantic model or dataclass.
    """
    if not organization_id:
        raise MissingOrganizationContextError(
            "Organization context required but not found in request"
        )

    if isinstance(data, Mapping):
        return {**data, ORGANIZATION_FIELD: organization_id}  # type: ignore[return-value]
    if isinstance(data, BaseModel):
        return data.model_copy(update={ORGANIZATION_FIELD: organization_id})
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.replace(data, **{ORGANIZATION_FIELD: organization_id})

    raise TypeError(f"Cannot stamp organization on {type(data).__name__}")


def namespaced_cache_key(base_key: str, user_id: str | None, organization_id: str | None) -> str:
    """Build ``base:user:org`` with the identity parts escaped.

    Escaping ``:`` and ``%`` inside the ids keeps the last two segments
    unambiguous, so distinct (user, organization) pairs never share a key.

    Raises:
        MissingOrganizationContextError: If either id is empty.
    """
    if not organization_id:
        raise MissingOrganizationContextError(
            "Organization context required for cache key generation"
        )
    if not user_id:
        raise MissingOrganizationContextError("User context required for cache key generation")

    return f"{base_key}:{quote(str(user_id), safe='')}:{quote(str(organization_id), safe='')}"
