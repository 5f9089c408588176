"""Repository protocol interfaces for data access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from backend.app.models.organization import InviteStatus, Plan, Role

OutT = TypeVar("OutT", bound=BaseModel)


@dataclass
class OrganizationRecord:
    """Organization data record."""

    id: str
    name: str
    plan: Plan
    logo: str | None
    website: str | None
    industry: str | None
    size: str | None
    created_at: datetime
    updated_at: datetime


@dataclass
class MembershipRecord:
    """Membership data record."""

    id: int
    user_id: str
    organization_id: str
    role: Role
    invite_status: InviteStatus
    is_default: bool
    joined_at: datetime
    invite_token: str | None = None
    invite_expires_at: datetime | None = None

    @property
    def is_accepted(self) -> bool:
        return self.invite_status == InviteStatus.accepted


@dataclass
class MembershipDraft:
    """Fields for inserting or merging a membership."""

    user_id: str
    organization_id: str
    role: Role
    invite_status: InviteStatus = InviteStatus.accepted
    is_default: bool = False
    invite_token: str | None = None
    invite_expires_at: datetime | None = None


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class MembershipStore(Protocol):
    """Storage for organizations and memberships."""

    async def get_organization(self, organization_id: str) -> OrganizationRecord | None:
        ...

    async def get_organizations(self, organization_ids: list[str]) -> list[OrganizationRecord]:
        ...

    async def insert_organization(self, fields: dict[str, Any]) -> OrganizationRecord:
        ...

    async def update_organization(
        self, organization_id: str, changes: dict[str, Any]
    ) -> OrganizationRecord | None:
        ...

    async def get_membership(self, user_id: str, organization_id: str) -> MembershipRecord | None:
        ...

    async def get_membership_by_id(self, member_id: int) -> MembershipRecord | None:
        ...

    async def get_membership_by_token(self, token: str) -> MembershipRecord | None:
        ...

    async def memberships_for_user(self, user_id: str) -> list[MembershipRecord]:
        """All memberships of a user, oldest first."""
        ...

    async def list_members(self, organization_id: str) -> list[MembershipRecord]:
        ...

    async def upsert_membership(self, draft: MembershipDraft) -> MembershipRecord:
        """Insert a membership, or merge into the existing (user, organization) row.

        Never produces a second row for the same pair.
        """
        ...

    async def update_membership(
        self, member_id: int, changes: dict[str, Any]
    ) -> MembershipRecord | None:
        ...

    async def delete_membership(self, member_id: int) -> bool:
        ...


class RecordRepository(Protocol[OutT]):
    """Storage for one kind of user-owned, tenant-scoped record."""

    async def list_for_user(self, user_id: str, organization_id: str) -> list[OutT]:
        """Records owned by ``user_id`` that may belong to ``organization_id``."""
        ...

    async def get(self, record_id: int) -> OutT | None:
        """Point read by id, without any tenancy check."""
        ...

    async def add(self, fields: dict[str, Any]) -> OutT:
        ...

    async def update(self, record_id: int, changes: dict[str, Any]) -> OutT | None:
        ...

    async def delete(self, record_id: int) -> bool:
        ...


class MessageRepository(Protocol):
    """Storage for conversation messages."""

    async def list_for_conversation(self, conversation_id: int) -> list[Any]:
        ...

    async def add(self, fields: dict[str, Any]) -> Any:
        ...


class RateLimiter(Protocol):
    """Rate limiter interface."""

    async def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
