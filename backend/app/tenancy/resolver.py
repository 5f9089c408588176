"""Request context resolver - principal + organization hint -> RequestContext."""

import re

from backend.app.api.errors import AuthenticationError, AuthorizationError, ValidationError
from backend.app.config import DefaultOrganizationPolicy
from backend.app.db.context import RequestContext
from backend.app.db.repositories import MembershipRecord
from backend.app.tenancy.directory import OrganizationDirectory
from backend.app.tenancy.hooks import TenancyLogger, TenancyMetrics

ORGANIZATION_HINT_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_organization_hint(hint: str) -> str:
    """Return the hint if well-formed.

    Raises:
        ValidationError: Blank, too long, or outside ``[A-Za-z0-9_-]``.
    """
    if not ORGANIZATION_HINT_PATTERN.match(hint):
        raise ValidationError("Invalid organization identifier")
    return hint


class RequestContextResolver:
    """Turns an authenticated user and an optional organization hint into a context.

    The hint is never trusted: it is only a key for the membership lookup,
    and anything short of an accepted membership is rejected the same way
    whether the organization exists or not.
    """

    def __init__(
        self,
        directory: OrganizationDirectory,
        policy: DefaultOrganizationPolicy = DefaultOrganizationPolicy.default_membership,
        logger: TenancyLogger | None = None,
        metrics: TenancyMetrics | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            directory: Membership lookups
            policy: Organization selection when the request carries no hint
            logger: Structured logger (optional, defaults to no-op)
            metrics: Metrics recorder (optional, defaults to no-op)
        """
        self._directory = directory
        self._policy = policy
        self._logger = logger or TenancyLogger()
        self._metrics = metrics or TenancyMetrics()

    async def resolve(self, user_id: str | None, organization_hint: str | None) -> RequestContext:
        """Resolve the organization context for one request.

        Args:
            user_id: Authenticated principal, None if unauthenticated
            organization_hint: Organization requested by the client, None if absent

        Returns:
            RequestContext for an accepted membership

        Raises:
            AuthenticationError: No principal
            ValidationError: Malformed hint
            AuthorizationError: No accepted membership for the requested or
                default organization
        """
        if not user_id:
            self._metrics.inc_denial("unauthenticated")
            raise AuthenticationError()

        if organization_hint is not None:
            validate_organization_hint(organization_hint)
            membership = await self._directory.get_membership(user_id, organization_hint)
            source = "hint"
        else:
            membership = await self._default_membership(user_id)
            source = f"default:{self._policy.value}"

        if membership is None or not membership.is_accepted:
            if organization_hint is None:
                reason = "no_default_organization"
            elif membership is None:
                reason = "no_membership"
            else:
                reason = f"invite_{membership.invite_status.value}"
            self._metrics.inc_denial(reason)
            self._logger.access_denied(user_id, organization_hint, reason)
            raise AuthorizationError(
                f"User {user_id} has no accepted membership in {organization_hint or 'any organization'}",
                context={"user_id": user_id, "organization_id": organization_hint, "reason": reason},
            )

        self._logger.context_resolved(
            user_id, membership.organization_id, membership.role.value, source
        )
        return RequestContext(
            user_id=user_id,
            organization_id=membership.organization_id,
            role=membership.role,
        )

    async def _default_membership(self, user_id: str) -> MembershipRecord | None:
        if self._policy == DefaultOrganizationPolicy.reject:
            return None

        memberships = await self._directory.memberships_for_user(user_id)
        if self._policy == DefaultOrganizationPolicy.sole_membership:
            return memberships[0] if len(memberships) == 1 else None

        for membership in memberships:
            if membership.is_default:
                return membership
        return memberships[0] if memberships else None
