"""SQL implementations of repository interfaces."""

import logging
from typing import Any, Generic

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.models import Message, Organization, OrganizationMember
from backend.app.db.queries import query_user_records
from backend.app.db.repositories import (
    MembershipDraft,
    MembershipRecord,
    OrganizationRecord,
    OutT,
)
from backend.app.models.organization import InviteStatus, Plan, Role
from backend.app.models.records import MessageOut

logger = logging.getLogger(__name__)


def _to_organization_record(row: Organization) -> OrganizationRecord:
    return OrganizationRecord(
        id=row.id,
        name=row.name,
        plan=Plan(row.plan),
        logo=row.logo,
        website=row.website,
        industry=row.industry,
        size=row.size,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_membership_record(row: OrganizationMember) -> MembershipRecord:
    return MembershipRecord(
        id=row.id,
        user_id=row.user_id,
        organization_id=row.organization_id,
        role=Role(row.role),
        invite_status=InviteStatus(row.invite_status),
        is_default=row.is_default,
        joined_at=row.joined_at,
        invite_token=row.invite_token,
        invite_expires_at=row.invite_expires_at,
    )


class SqlMembershipStore:
    """SQL implementation of MembershipStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_organization(self, organization_id: str) -> OrganizationRecord | None:
        row = await self._session.get(Organization, organization_id)
        return _to_organization_record(row) if row is not None else None

    async def get_organizations(self, organization_ids: list[str]) -> list[OrganizationRecord]:
        if not organization_ids:
            return []
        result = await self._session.execute(
            select(Organization).where(Organization.id.in_(organization_ids))
        )
        by_id = {row.id: _to_organization_record(row) for row in result.scalars().all()}
        return [by_id[org_id] for org_id in organization_ids if org_id in by_id]

    async def insert_organization(self, fields: dict[str, Any]) -> OrganizationRecord:
        row = Organization(**fields)
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)
        return _to_organization_record(row)

    async def update_organization(
        self, organization_id: str, changes: dict[str, Any]
    ) -> OrganizationRecord | None:
        row = await self._session.get(Organization, organization_id)
        if row is None:
            return None

        for field, value in changes.items():
            setattr(row, field, value)

        await self._session.commit()
        await self._session.refresh(row)
        return _to_organization_record(row)

    async def _membership_row(self, user_id: str, organization_id: str) -> OrganizationMember | None:
        result = await self._session.execute(
            select(OrganizationMember).where(
                OrganizationMember.user_id == user_id,
                OrganizationMember.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_membership(self, user_id: str, organization_id: str) -> MembershipRecord | None:
        row = await self._membership_row(user_id, organization_id)
        return _to_membership_record(row) if row is not None else None

    async def get_membership_by_id(self, member_id: int) -> MembershipRecord | None:
        row = await self._session.get(OrganizationMember, member_id)
        return _to_membership_record(row) if row is not None else None

    async def get_membership_by_token(self, token: str) -> MembershipRecord | None:
        result = await self._session.execute(
            select(OrganizationMember).where(OrganizationMember.invite_token == token)
        )
        row = result.scalar_one_or_none()
        return _to_membership_record(row) if row is not None else None

    async def memberships_for_user(self, user_id: str) -> list[MembershipRecord]:
        result = await self._session.execute(
            select(OrganizationMember)
            .where(OrganizationMember.user_id == user_id)
            .order_by(OrganizationMember.joined_at, OrganizationMember.id)
        )
        return [_to_membership_record(row) for row in result.scalars().all()]

    async def list_members(self, organization_id: str) -> list[MembershipRecord]:
        result = await self._session.execute(
            select(OrganizationMember)
            .where(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.joined_at, OrganizationMember.id)
        )
        return [_to_membership_record(row) for row in result.scalars().all()]

    @staticmethod
    def _merge(row: OrganizationMember, draft: MembershipDraft) -> None:
        row.role = draft.role.value
        row.invite_status = draft.invite_status.value
        row.is_default = row.is_default or draft.is_default
        if draft.invite_token is not None:
            row.invite_token = draft.invite_token
            row.invite_expires_at = draft.invite_expires_at

    async def upsert_membership(self, draft: MembershipDraft) -> MembershipRecord:
        existing = await self._membership_row(draft.user_id, draft.organization_id)
        if existing is not None:
            self._merge(existing, draft)
            await self._session.commit()
            await self._session.refresh(existing)
            return _to_membership_record(existing)

        row = OrganizationMember(
            user_id=draft.user_id,
            organization_id=draft.organization_id,
            role=draft.role.value,
            invite_status=draft.invite_status.value,
            is_default=draft.is_default,
            invite_token=draft.invite_token,
            invite_expires_at=draft.invite_expires_at,
        )
        self._session.add(row)
        try:
            await self._session.commit()
        except IntegrityError:
            # A concurrent insert won the unique constraint; merge into its row.
            await self._session.rollback()
            logger.info(
                "Membership insert raced; merging",
                extra={
                    "structured": {
                        "user_id": draft.user_id,
                        "organization_id": draft.organization_id,
                    }
                },
            )
            existing = await self._membership_row(draft.user_id, draft.organization_id)
            if existing is None:
                raise
            self._merge(existing, draft)
            await self._session.commit()
            await self._session.refresh(existing)
            return _to_membership_record(existing)

        await self._session.refresh(row)
        return _to_membership_record(row)

    async def update_membership(
        self, member_id: int, changes: dict[str, Any]
    ) -> MembershipRecord | None:
        row = await self._session.get(OrganizationMember, member_id)
        if row is None:
            return None

        for field, value in changes.items():
            setattr(row, field, value.value if isinstance(value, Role | InviteStatus) else value)

        await self._session.commit()
        await self._session.refresh(row)
        return _to_membership_record(row)

    async def delete_membership(self, member_id: int) -> bool:
        row = await self._session.get(OrganizationMember, member_id)
        if row is None:
            return False

        await self._session.delete(row)
        await self._session.commit()
        return True


class SqlRecordRepository(Generic[OutT]):
    """SQL implementation of RecordRepository for one ORM model."""

    def __init__(
        self,
        session: AsyncSession,
        model: Any,
        out_model: type[OutT],
        *,
        order_by: Any,
        allow_unscoped: bool = True,
    ) -> None:
        self._session = session
        self._model = model
        self._out_model = out_model
        self._order_by = order_by
        self._allow_unscoped = allow_unscoped

    async def list_for_user(self, user_id: str, organization_id: str) -> list[OutT]:
        query = query_user_records(
            self._model, user_id, organization_id, allow_unscoped=self._allow_unscoped
        ).order_by(self._order_by.desc())
        result = await self._session.execute(query)
        return [self._out_model.model_validate(row) for row in result.scalars().all()]

    async def get(self, record_id: int) -> OutT | None:
        row = await self._session.get(self._model, record_id)
        return self._out_model.model_validate(row) if row is not None else None

    async def add(self, fields: dict[str, Any]) -> OutT:
        row = self._model(**fields)
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)
        return self._out_model.model_validate(row)

    async def update(self, record_id: int, changes: dict[str, Any]) -> OutT | None:
        row = await self._session.get(self._model, record_id)
        if row is None:
            return None

        for field, value in changes.items():
            setattr(row, field, value)

        await self._session.commit()
        await self._session.refresh(row)
        return self._out_model.model_validate(row)

    async def delete(self, record_id: int) -> bool:
        row = await self._session.get(self._model, record_id)
        if row is None:
            return False

        await self._session.delete(row)
        await self._session.commit()
        return True


class SqlMessageRepository:
    """SQL implementation of MessageRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_conversation(self, conversation_id: int) -> list[MessageOut]:
        result = await self._session.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at, Message.id)
        )
        return [MessageOut.model_validate(row) for row in result.scalars().all()]

    async def add(self, fields: dict[str, Any]) -> MessageOut:
        row = Message(**fields)
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)
        return MessageOut.model_validate(row)
