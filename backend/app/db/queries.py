"""Tenancy-safe query helpers."""

from typing import Any

from sqlalchemy import ColumnElement, Select, false, or_, select


def organization_visible(
    model: Any, organization_id: str | None, *, allow_unscoped: bool = True
) -> ColumnElement[bool]:
    """SQL predicate matching rows visible to ``organization_id``.

    Mirrors ``access_allowed``: no organization matches nothing, unscoped rows
    match only while ``allow_unscoped`` holds.
    """
    if not organization_id:
        return false()

    if allow_unscoped:
        return or_(model.organization_id.is_(None), model.organization_id == organization_id)
    return model.organization_id == organization_id


def query_user_records(
    model: Any, user_id: str, organization_id: str, *, allow_unscoped: bool = True
) -> Select[Any]:
    """Select a user's rows of ``model`` with organization scoping enforced.

    Args:
        model: ORM class with ``user_id`` and ``organization_id`` columns
        user_id: Owner of the rows
        organization_id: Resolved organization of the request
        allow_unscoped: Whether rows without an organization are visible

    Returns:
        Select filtered by user_id and organization visibility
    """
    return select(model).where(
        model.user_id == user_id,
        organization_visible(model, organization_id, allow_unscoped=allow_unscoped),
    )
