"""Organization directory - organizations, memberships and invitations."""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from backend.app.api.errors import ConflictError, NotFoundError, ValidationError
from backend.app.config import Settings
from backend.app.db.repositories import (
    MembershipDraft,
    MembershipRecord,
    MembershipStore,
    OrganizationRecord,
)
from backend.app.models.organization import (
    MANAGER_ROLES,
    InviteStatus,
    OrganizationCreate,
    OrganizationUpdate,
    Role,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _check_grantable(role: Role) -> None:
    # Ownership only comes from creating the organization
    if role == Role.owner:
        raise ValidationError("Owner role cannot be granted to a member")


def _check_keeps_a_manager(members: list[MembershipRecord], target: MembershipRecord) -> None:
    """Refuse to drop ``target`` if it is the organization's last accepted manager."""
    if not (target.is_accepted and target.role in MANAGER_ROLES):
        return
    managers = [m for m in members if m.is_accepted and m.role in MANAGER_ROLES]
    if len(managers) == 1:
        raise ValidationError("Cannot remove the last admin from an organization")


class OrganizationDirectory:
    """Answers membership questions and owns organization lifecycle writes.

    Only accepted memberships count for ``is_member`` and ``role_of``; pending
    and revoked rows exist for the invitation flow and grant nothing.
    """

    def __init__(self, store: MembershipStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    async def get_membership(self, user_id: str, organization_id: str) -> MembershipRecord | None:
        """Membership row for the pair, whatever its invite status."""
        return await self._store.get_membership(user_id, organization_id)

    async def is_member(self, user_id: str, organization_id: str) -> bool:
        membership = await self._store.get_membership(user_id, organization_id)
        return membership is not None and membership.is_accepted

    async def role_of(self, user_id: str, organization_id: str) -> Role | None:
        membership = await self._store.get_membership(user_id, organization_id)
        if membership is None or not membership.is_accepted:
            return None
        return membership.role

    async def memberships_for_user(self, user_id: str) -> list[MembershipRecord]:
        """Accepted memberships of a user, oldest first."""
        memberships = await self._store.memberships_for_user(user_id)
        return [m for m in memberships if m.is_accepted]

    async def organizations_for_user(self, user_id: str) -> list[OrganizationRecord]:
        memberships = await self.memberships_for_user(user_id)
        return await self._store.get_organizations([m.organization_id for m in memberships])

    async def get_organization(self, organization_id: str) -> OrganizationRecord | None:
        return await self._store.get_organization(organization_id)

    async def create_organization(
        self, data: OrganizationCreate, owner_user_id: str
    ) -> OrganizationRecord:
        """Create an organization and make ``owner_user_id`` its owner.

        The owner membership is accepted and flagged as the user's default.
        """
        fields = data.model_dump(mode="json")
        organization = await self._store.insert_organization(fields)
        await self._store.upsert_membership(
            MembershipDraft(
                user_id=owner_user_id,
                organization_id=organization.id,
                role=Role.owner,
                is_default=True,
            )
        )
        logger.info(
            f"Organization created: {organization.id}",
            extra={"structured": {"organization_id": organization.id, "owner": owner_user_id}},
        )
        return organization

    async def update_organization(
        self, organization_id: str, data: OrganizationUpdate
    ) -> OrganizationRecord:
        """Apply the fields set on ``data``.

        Raises:
            NotFoundError: If the organization does not exist.
        """
        changes: dict[str, Any] = data.model_dump(mode="json", exclude_unset=True)
        organization = await self._store.update_organization(organization_id, changes)
        if organization is None:
            raise NotFoundError("Organization not found")
        return organization

    async def add_member(
        self,
        organization_id: str,
        user_id: str,
        role: Role = Role.member,
        is_default: bool = False,
    ) -> MembershipRecord:
        """Add an accepted member, merging into an existing row for the pair.

        Raises:
            ValidationError: If ``role`` is owner, or the change would demote
                the last accepted owner or admin.
        """
        _check_grantable(role)
        members = await self._store.list_members(organization_id)
        target = next((m for m in members if m.user_id == user_id), None)
        if target is not None and role not in MANAGER_ROLES:
            _check_keeps_a_manager(members, target)

        return await self._store.upsert_membership(
            MembershipDraft(
                user_id=user_id,
                organization_id=organization_id,
                role=role,
                is_default=is_default,
            )
        )

    async def list_members(self, organization_id: str) -> list[MembershipRecord]:
        return await self._store.list_members(organization_id)

    async def remove_member(self, organization_id: str, member_id: int) -> None:
        """Delete a membership of ``organization_id``.

        Raises:
            NotFoundError: If no such membership exists in this organization.
            ValidationError: If it is the last accepted owner or admin.
        """
        members = await self._store.list_members(organization_id)
        target = next((m for m in members if m.id == member_id), None)
        if target is None:
            raise NotFoundError("Member not found")

        _check_keeps_a_manager(members, target)
        await self._store.delete_membership(member_id)

    async def invite_member(
        self, organization_id: str, user_id: str, role: Role = Role.member
    ) -> MembershipRecord:
        """Create (or refresh) a pending membership carrying an invite token.

        Raises:
            ValidationError: If ``role`` is owner.
            ConflictError: If the user is already an accepted member.
        """
        _check_grantable(role)
        existing = await self._store.get_membership(user_id, organization_id)
        if existing is not None and existing.is_accepted:
            raise ConflictError("User is already a member of this organization")

        expires_at = datetime.now(UTC) + timedelta(hours=self._settings.invite_ttl_hours)
        return await self._store.upsert_membership(
            MembershipDraft(
                user_id=user_id,
                organization_id=organization_id,
                role=role,
                invite_status=InviteStatus.pending,
                invite_token=secrets.token_urlsafe(32),
                invite_expires_at=expires_at,
            )
        )

    async def accept_invite(
        self, token: str, user_id: str, now: datetime | None = None
    ) -> MembershipRecord:
        """Turn a pending invitation for ``user_id`` into an accepted membership.

        Raises:
            NotFoundError: Unknown token, or a token issued to another user.
            ValidationError: Invitation revoked, already used or expired.
        """
        if now is None:
            now = datetime.now(UTC)

        membership = await self._store.get_membership_by_token(token)
        if membership is None or membership.user_id != user_id:
            raise NotFoundError("Invitation not found")

        if membership.invite_status != InviteStatus.pending:
            raise ValidationError(f"Invitation is {membership.invite_status.value}")

        expires_at = membership.invite_expires_at
        if expires_at is not None and _as_utc(expires_at) <= _as_utc(now):
            raise ValidationError("Invitation has expired")

        accepted = await self._store.update_membership(
            membership.id,
            {
                "invite_status": InviteStatus.accepted,
                "invite_token": None,
                "invite_expires_at": None,
            },
        )
        if accepted is None:
            raise NotFoundError("Invitation not found")
        return accepted

    async def revoke_invite(self, organization_id: str, member_id: int) -> MembershipRecord:
        """Revoke a pending invitation.

        Raises:
            NotFoundError: If no pending invitation with that id exists here.
        """
        membership = await self._store.get_membership_by_id(member_id)
        if (
            membership is None
            or membership.organization_id != organization_id
            or membership.invite_status != InviteStatus.pending
        ):
            raise NotFoundError("Invitation not found")

        revoked = await self._store.update_membership(
            member_id, {"invite_status": InviteStatus.revoked}
        )
        if revoked is None:
            raise NotFoundError("Invitation not found")
        return revoked
