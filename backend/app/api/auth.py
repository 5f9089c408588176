"""Authentication and organization context dependencies.

The upstream auth gateway forwards the authenticated user as
``Authorization: Bearer <user_id>``. Everything organization-related is
resolved here, once per request, and cached on ``request.state``.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.errors import AuthenticationError, AuthorizationError, NotFoundError
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.db.engine import get_session
from backend.app.db.repositories import MembershipStore
from backend.app.db.sql_repositories import SqlMembershipStore
from backend.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from backend.app.models.organization import Role
from backend.app.ratelimit import get_rate_limiter
from backend.app.tenancy.directory import OrganizationDirectory
from backend.app.tenancy.resolver import RequestContextResolver, validate_organization_hint
from backend.app.utils.logging import StructuredTenancyLogger
from backend.app.utils.metrics import PrometheusTenancyMetrics

ORGANIZATION_QUERY_PARAM = "organizationId"

_tenancy_logger = StructuredTenancyLogger()
_tenancy_metrics = PrometheusTenancyMetrics()


def get_tenancy_logger() -> StructuredTenancyLogger:
    return _tenancy_logger


def get_tenancy_metrics() -> PrometheusTenancyMetrics:
    return _tenancy_metrics


async def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Extract the authenticated user id from the authorization header.

    Raises:
        AuthenticationError: Header missing, not a bearer token, or empty
    """
    if not authorization:
        raise AuthenticationError()

    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    user_id = authorization[7:].strip()  # Strip "Bearer "
    if not user_id:
        raise AuthenticationError("Invalid bearer token")

    return user_id


def get_membership_store(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MembershipStore:
    return SqlMembershipStore(session)


def get_directory(
    store: Annotated[MembershipStore, Depends(get_membership_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OrganizationDirectory:
    return OrganizationDirectory(store, settings)


def get_resolver(
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestContextResolver:
    return RequestContextResolver(
        directory,
        settings.default_organization_policy,
        logger=get_tenancy_logger(),
        metrics=get_tenancy_metrics(),
    )


def get_rate_limit_middleware() -> RateLimitMiddleware:
    return RateLimitMiddleware(get_rate_limiter(), create_default_bucket_map())


async def get_request_context(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    resolver: Annotated[RequestContextResolver, Depends(get_resolver)],
    rate_limits: Annotated[RateLimitMiddleware, Depends(get_rate_limit_middleware)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RequestContext:
    """Resolve the organization context from the header or query hint.

    The header wins over the ``organizationId`` query parameter. Without
    either, the configured default-organization policy applies.
    """
    cached = getattr(request.state, "tenant_context", None)
    if cached is not None:
        return cached

    hint = request.headers.get(settings.organization_header)
    if hint is None:
        hint = request.query_params.get(ORGANIZATION_QUERY_PARAM)

    ctx = await resolver.resolve(user_id, hint)
    request.state.tenant_context = ctx
    await rate_limits.enforce(request.url.path, ctx)
    return ctx


async def get_path_organization_context(
    organization_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
    resolver: Annotated[RequestContextResolver, Depends(get_resolver)],
    rate_limits: Annotated[RateLimitMiddleware, Depends(get_rate_limit_middleware)],
) -> RequestContext:
    """Resolve the context for ``/organizations/{organization_id}`` routes.

    The path names the organization; header and query hints are ignored.

    Raises:
        NotFoundError: If the organization does not exist
    """
    cached = getattr(request.state, "tenant_context", None)
    if cached is not None:
        return cached

    validate_organization_hint(organization_id)
    if await directory.get_organization(organization_id) is None:
        raise NotFoundError("Organization not found")

    ctx = await resolver.resolve(user_id, organization_id)
    request.state.tenant_context = ctx
    await rate_limits.enforce(request.url.path, ctx)
    return ctx


def require_role(
    *roles: Role,
    context: Callable[..., Awaitable[RequestContext]] = get_request_context,
) -> Callable[..., Awaitable[RequestContext]]:
    """Build a dependency that admits only the given roles.

    Args:
        roles: Roles allowed through
        context: Dependency producing the RequestContext to check

    Returns:
        Dependency returning the context when the role is allowed
    """
    allowed = frozenset(roles)

    async def dependency(
        ctx: Annotated[RequestContext, Depends(context)],
    ) -> RequestContext:
        if ctx.role not in allowed:
            get_tenancy_metrics().inc_denial("insufficient_role")
            get_tenancy_logger().access_denied(
                ctx.user_id, ctx.organization_id, f"role {ctx.role.value} not allowed"
            )
            raise AuthorizationError(
                f"Role {ctx.role.value} may not perform this action",
                context={"user_id": ctx.user_id, "organization_id": ctx.organization_id},
            )
        return ctx

    return dependency
