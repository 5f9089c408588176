"""In-memory implementations of repository interfaces."""

import dataclasses
import itertools
import uuid
from datetime import datetime, timedelta
from typing import Any, Generic

from backend.app.db.models import utcnow
from backend.app.db.repositories import (
    MembershipDraft,
    MembershipRecord,
    OrganizationRecord,
    OutT,
    RetryAfter,
)
from backend.app.models.organization import InviteStatus, Plan, Role
from backend.app.models.records import MessageOut


class InMemoryMembershipStore:
    """In-memory implementation of MembershipStore.

    Returns copies, so callers see a snapshot the way they would from SQL.
    """

    def __init__(self) -> None:
        self._organizations: dict[str, OrganizationRecord] = {}
        self._members: dict[int, MembershipRecord] = {}
        self._ids = itertools.count(1)

    async def get_organization(self, organization_id: str) -> OrganizationRecord | None:
        record = self._organizations.get(organization_id)
        return dataclasses.replace(record) if record is not None else None

    async def get_organizations(self, organization_ids: list[str]) -> list[OrganizationRecord]:
        return [
            dataclasses.replace(self._organizations[org_id])
            for org_id in organization_ids
            if org_id in self._organizations
        ]

    async def insert_organization(self, fields: dict[str, Any]) -> OrganizationRecord:
        now = utcnow()
        record = OrganizationRecord(
            id=fields.get("id") or uuid.uuid4().hex,
            name=fields["name"],
            plan=Plan(fields.get("plan", Plan.basic)),
            logo=fields.get("logo"),
            website=fields.get("website"),
            industry=fields.get("industry"),
            size=fields.get("size"),
            created_at=now,
            updated_at=now,
        )
        self._organizations[record.id] = record
        return dataclasses.replace(record)

    async def update_organization(
        self, organization_id: str, changes: dict[str, Any]
    ) -> OrganizationRecord | None:
        record = self._organizations.get(organization_id)
        if record is None:
            return None

        for field, value in changes.items():
            setattr(record, field, Plan(value) if field == "plan" else value)
        record.updated_at = utcnow()
        return dataclasses.replace(record)

    def _find(self, user_id: str, organization_id: str) -> MembershipRecord | None:
        for record in self._members.values():
            if record.user_id == user_id and record.organization_id == organization_id:
                return record
        return None

    async def get_membership(self, user_id: str, organization_id: str) -> MembershipRecord | None:
        record = self._find(user_id, organization_id)
        return dataclasses.replace(record) if record is not None else None

    async def get_membership_by_id(self, member_id: int) -> MembershipRecord | None:
        record = self._members.get(member_id)
        return dataclasses.replace(record) if record is not None else None

    async def get_membership_by_token(self, token: str) -> MembershipRecord | None:
        for record in self._members.values():
            if record.invite_token == token:
                return dataclasses.replace(record)
        return None

    async def memberships_for_user(self, user_id: str) -> list[MembershipRecord]:
        records = [r for r in self._members.values() if r.user_id == user_id]
        return [dataclasses.replace(r) for r in sorted(records, key=lambda r: (r.joined_at, r.id))]

    async def list_members(self, organization_id: str) -> list[MembershipRecord]:
        records = [r for r in self._members.values() if r.organization_id == organization_id]
        return [dataclasses.replace(r) for r in sorted(records, key=lambda r: (r.joined_at, r.id))]

    async def upsert_membership(self, draft: MembershipDraft) -> MembershipRecord:
        existing = self._find(draft.user_id, draft.organization_id)
        if existing is not None:
            existing.role = draft.role
            existing.invite_status = draft.invite_status
            existing.is_default = existing.is_default or draft.is_default
            if draft.invite_token is not None:
                existing.invite_token = draft.invite_token
                existing.invite_expires_at = draft.invite_expires_at
            return dataclasses.replace(existing)

        record = MembershipRecord(
            id=next(self._ids),
            user_id=draft.user_id,
            organization_id=draft.organization_id,
            role=draft.role,
            invite_status=draft.invite_status,
            is_default=draft.is_default,
            joined_at=utcnow(),
            invite_token=draft.invite_token,
            invite_expires_at=draft.invite_expires_at,
        )
        self._members[record.id] = record
        return dataclasses.replace(record)

    async def update_membership(
        self, member_id: int, changes: dict[str, Any]
    ) -> MembershipRecord | None:
        record = self._members.get(member_id)
        if record is None:
            return None

        for field, value in changes.items():
            if field == "role":
                value = Role(value)
            elif field == "invite_status":
                value = InviteStatus(value)
            setattr(record, field, value)
        return dataclasses.replace(record)

    async def delete_membership(self, member_id: int) -> bool:
        return self._members.pop(member_id, None) is not None


class InMemoryRecordRepository(Generic[OutT]):
    """In-memory implementation of RecordRepository.

    ``list_for_user`` applies no organization predicate, so the isolation
    guard is the only thing standing between tenants. ``calls`` records every
    method invocation for assertions.
    """

    def __init__(self, out_model: type[OutT], defaults: dict[str, Any] | None = None) -> None:
        self._out_model = out_model
        self._defaults = defaults or {}
        self._records: dict[int, OutT] = {}
        self._ids = itertools.count(1)
        self.calls: list[str] = []

    def seed(self, records: list[OutT]) -> None:
        """Insert pre-built records (e.g. legacy rows without an organization)."""
        for record in records:
            self._records[record.id] = record  # type: ignore[attr-defined]

    async def list_for_user(self, user_id: str, organization_id: str) -> list[OutT]:
        self.calls.append("list_for_user")
        return [r for r in self._records.values() if r.user_id == user_id]  # type: ignore[attr-defined]

    async def get(self, record_id: int) -> OutT | None:
        self.calls.append("get")
        return self._records.get(record_id)

    async def add(self, fields: dict[str, Any]) -> OutT:
        self.calls.append("add")
        now = utcnow()
        record = self._out_model.model_validate(
            {**self._defaults, **fields, "id": next(self._ids), "created_at": now, "updated_at": now}
        )
        self._records[record.id] = record  # type: ignore[attr-defined]
        return record

    async def update(self, record_id: int, changes: dict[str, Any]) -> OutT | None:
        self.calls.append("update")
        record = self._records.get(record_id)
        if record is None:
            return None

        known = {k: v for k, v in changes.items() if k in self._out_model.model_fields}
        if "updated_at" in self._out_model.model_fields:
            known["updated_at"] = utcnow()
        updated = record.model_copy(update=known)
        self._records[record_id] = updated
        return updated

    async def delete(self, record_id: int) -> bool:
        self.calls.append("delete")
        return self._records.pop(record_id, None) is not None


class InMemoryMessageRepository:
    """In-memory implementation of MessageRepository."""

    def __init__(self) -> None:
        self._messages: list[MessageOut] = []
        self._ids = itertools.count(1)

    async def list_for_conversation(self, conversation_id: int) -> list[MessageOut]:
        return [m for m in self._messages if m.conversation_id == conversation_id]

    async def add(self, fields: dict[str, Any]) -> MessageOut:
        message = MessageOut.model_validate(
            {**fields, "id": next(self._ids), "created_at": utcnow()}
        )
        self._messages.append(message)
        return message


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    async def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        if key not in self._windows:
            self._windows[key] = (now, 1)
            return None

        window_start, count = self._windows[key]
        window_end = window_start + timedelta(seconds=self._window_seconds)

        if now >= window_end:
            self._windows[key] = (now, 1)
            return None

        if count >= self._max_requests:
            seconds_remaining = int((window_end - now).total_seconds())
            return RetryAfter(seconds=max(1, seconds_remaining))

        self._windows[key] = (window_start, count + 1)
        return None
