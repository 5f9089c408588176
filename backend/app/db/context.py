"""Request context for tenancy enforcement."""

from dataclasses import dataclass

from backend.app.models.organization import Role


@dataclass(frozen=True)
class RequestContext:
    """Resolved identity for a single request.

    Produced once by the request context resolver after the membership check
    and used to scope every read and write for the rest of the request.
    """

    user_id: str
    organization_id: str
    role: Role
