"""Tenant-scoped record access with caching and the isolation guard applied.

Every read path ends in ``filter_by_organization`` or ``access_allowed`` and
every write path starts with ``ensure_organization_context``, independent of
what the repository query already filtered.
"""

import logging
from typing import Any, Generic

from pydantic import BaseModel

from backend.app.api.errors import AuthorizationError, NotFoundError
from backend.app.db.context import RequestContext
from backend.app.db.repositories import MessageRepository, OutT, RecordRepository
from backend.app.models.common import ORGANIZATION_FIELD, scope_of
from backend.app.models.records import ConversationOut, MessageCreate, MessageOut
from backend.app.tenancy.cache import TenantCache
from backend.app.tenancy.guard import (
    access_allowed,
    ensure_organization_context,
    filter_by_organization,
    namespaced_cache_key,
)
from backend.app.tenancy.hooks import TenancyLogger, TenancyMetrics

logger = logging.getLogger(__name__)

# Fields a client may never set or change through a create/update payload
_PROTECTED_FIELDS = frozenset({"id", "user_id", ORGANIZATION_FIELD, "created_at", "updated_at"})


class ScopedRecordService(Generic[OutT]):
    """CRUD for one kind of user-owned record inside the resolved organization."""

    def __init__(
        self,
        resource: str,
        repository: RecordRepository[OutT],
        out_model: type[OutT],
        cache: TenantCache,
        *,
        cache_ttl_seconds: int,
        allow_unscoped: bool = True,
        logger: TenancyLogger | None = None,
        metrics: TenancyMetrics | None = None,
    ) -> None:
        """Initialize service.

        Args:
            resource: Resource name, also the base of its cache keys
            repository: Record storage
            out_model: Model the records are returned as
            cache: List cache shared by all tenants
            cache_ttl_seconds: Lifetime of cached lists (0 disables caching)
            allow_unscoped: Whether records without an organization are visible
            logger: Structured logger (optional, defaults to no-op)
            metrics: Metrics recorder (optional, defaults to no-op)
        """
        self.resource = resource
        self._repository = repository
        self._out_model = out_model
        self._cache = cache
        self._cache_ttl_seconds = cache_ttl_seconds
        self._allow_unscoped = allow_unscoped
        self._logger = logger or TenancyLogger()
        self._metrics = metrics or TenancyMetrics()

    def cache_key(self, ctx: RequestContext) -> str:
        return namespaced_cache_key(self.resource, ctx.user_id, ctx.organization_id)

    async def invalidate(self, ctx: RequestContext) -> None:
        """Drop the cached list of the (user, organization) namespace."""
        await self._cache.delete(self.cache_key(ctx))

    def _filter(self, items: list[OutT], organization_id: str) -> list[OutT]:
        visible = filter_by_organization(
            items, organization_id, allow_unscoped=self._allow_unscoped
        )
        self._metrics.inc_filtered(self.resource, len(items) - len(visible))
        return visible

    async def list_visible(self, ctx: RequestContext) -> list[OutT]:
        """Records of the caller visible in the resolved organization, newest first."""
        key = self.cache_key(ctx)
        cached = await self._cache.get(key)
        hit = cached is not None
        self._metrics.record_cache_lookup(self.resource, hit)
        self._logger.cache_lookup(self.resource, key, hit)

        if cached is not None:
            # Cached lists were filtered before storing; filter again anyway
            return self._filter(
                [self._out_model.model_validate(item) for item in cached], ctx.organization_id
            )

        items = await self._repository.list_for_user(ctx.user_id, ctx.organization_id)
        visible = self._filter(items, ctx.organization_id)
        await self._cache.set(
            key, [item.model_dump(mode="json") for item in visible], self._cache_ttl_seconds
        )
        return visible

    async def get(self, ctx: RequestContext, record_id: int) -> OutT:
        """Point read.

        Raises:
            NotFoundError: No such record, or one owned by another user.
            AuthorizationError: The caller's record, but in another organization.
        """
        record = await self._repository.get(record_id)
        if record is None or getattr(record, "user_id", None) != ctx.user_id:
            raise NotFoundError(f"{self.resource} {record_id} not found")

        if not access_allowed(record, ctx.organization_id, allow_unscoped=self._allow_unscoped):
            scope = scope_of(record)
            owner = getattr(scope, "organization_id", None)
            self._metrics.inc_denial("cross_organization")
            self._logger.cross_tenant_attempt(
                ctx.user_id, ctx.organization_id, self.resource, record_id, owner
            )
            raise AuthorizationError(
                f"{self.resource} {record_id} belongs to another organization",
                context={
                    "user_id": ctx.user_id,
                    "organization_id": ctx.organization_id,
                    "record_id": record_id,
                },
            )
        return record

    async def create(self, ctx: RequestContext, payload: BaseModel) -> OutT:
        """Create a record owned by the caller in the resolved organization.

        Any ``organization_id`` in the payload is replaced, never honored.
        """
        fields: dict[str, Any] = payload.model_dump()
        claimed = fields.get(ORGANIZATION_FIELD)
        if claimed and claimed != ctx.organization_id:
            self._logger.client_claim_discarded(
                ctx.user_id, ctx.organization_id, self.resource, str(claimed)
            )

        fields = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}
        stamped = ensure_organization_context(fields, ctx.organization_id)
        stamped["user_id"] = ctx.user_id

        record = await self._repository.add(stamped)
        await self.invalidate(ctx)
        logger.info(
            f"Created {self.resource} {getattr(record, 'id', None)}",
            extra={
                "structured": {
                    "user_id": ctx.user_id,
                    "organization_id": ctx.organization_id,
                    "resource": self.resource,
                }
            },
        )
        return record

    async def update(self, ctx: RequestContext, record_id: int, changes: dict[str, Any]) -> OutT:
        """Apply ``changes`` to a visible record; ownership fields are ignored."""
        await self.get(ctx, record_id)
        allowed = {k: v for k, v in changes.items() if k not in _PROTECTED_FIELDS}
        updated = await self._repository.update(record_id, allowed)
        if updated is None:
            raise NotFoundError(f"{self.resource} {record_id} not found")
        await self.invalidate(ctx)
        return updated

    async def delete(self, ctx: RequestContext, record_id: int) -> None:
        await self.get(ctx, record_id)
        if not await self._repository.delete(record_id):
            raise NotFoundError(f"{self.resource} {record_id} not found")
        await self.invalidate(ctx)


class MessageService:
    """Messages of a conversation; access follows the parent conversation."""

    def __init__(
        self,
        conversations: ScopedRecordService[ConversationOut],
        repository: MessageRepository,
        *,
        allow_unscoped: bool = True,
        metrics: TenancyMetrics | None = None,
    ) -> None:
        self._conversations = conversations
        self._repository = repository
        self._allow_unscoped = allow_unscoped
        self._metrics = metrics or TenancyMetrics()

    async def list_visible(self, ctx: RequestContext, conversation_id: int) -> list[MessageOut]:
        await self._conversations.get(ctx, conversation_id)
        messages = await self._repository.list_for_conversation(conversation_id)
        visible = filter_by_organization(
            messages, ctx.organization_id, allow_unscoped=self._allow_unscoped
        )
        self._metrics.inc_filtered("messages", len(messages) - len(visible))
        return visible

    async def create(
        self, ctx: RequestContext, conversation_id: int, payload: MessageCreate
    ) -> MessageOut:
        """Append a message and bump the conversation's last-message fields."""
        await self._conversations.get(ctx, conversation_id)
        fields = ensure_organization_context(
            {**payload.model_dump(), "conversation_id": conversation_id}, ctx.organization_id
        )
        message: MessageOut = await self._repository.add(fields)
        await self._conversations.update(
            ctx,
            conversation_id,
            {"last_message": message.content, "last_message_at": message.created_at},
        )
        return message
