"""Common types shared across models."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

ORGANIZATION_FIELD = "organization_id"


@dataclass(frozen=True)
class Unscoped:
    """Record created before multi-tenancy; carries no organization."""


@dataclass(frozen=True)
class ScopedTo:
    """Record owned by exactly one organization."""

    organization_id: str


OrganizationScope = Unscoped | ScopedTo

UNSCOPED = Unscoped()


def scope_of(item: Any) -> OrganizationScope:
    """Read the organization scope of a mapping or an attribute-bearing object.

    A missing key, missing attribute, or None means Unscoped. An empty
    string is kept as a scope of its own, which no resolved organization
    ever matches.
    """
    if isinstance(item, Mapping):
        value = item.get(ORGANIZATION_FIELD)
    else:
        value = getattr(item, ORGANIZATION_FIELD, None)

    if value is None:
        return UNSCOPED
    return ScopedTo(organization_id=str(value))
