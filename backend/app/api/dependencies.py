"""FastAPI dependencies wiring tenant-scoped services to the database."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.auth import get_tenancy_logger, get_tenancy_metrics
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_session
from backend.app.db.models import Conversation, KnowledgeBaseItem, Platform
from backend.app.db.repositories import MessageRepository
from backend.app.db.sql_repositories import SqlMessageRepository, SqlRecordRepository
from backend.app.models.records import ConversationOut, KnowledgeBaseOut, PlatformOut
from backend.app.tenancy.cache import TenantCache, get_cache
from backend.app.tenancy.service import MessageService, ScopedRecordService

PlatformService = ScopedRecordService[PlatformOut]
ConversationService = ScopedRecordService[ConversationOut]
KnowledgeBaseService = ScopedRecordService[KnowledgeBaseOut]


def get_tenant_cache() -> TenantCache:
    return get_cache()


def get_platform_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[TenantCache, Depends(get_tenant_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PlatformService:
    repository = SqlRecordRepository(
        session,
        Platform,
        PlatformOut,
        order_by=Platform.created_at,
        allow_unscoped=settings.allow_unscoped_records,
    )
    return ScopedRecordService(
        "platforms",
        repository,
        PlatformOut,
        cache,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        allow_unscoped=settings.allow_unscoped_records,
        logger=get_tenancy_logger(),
        metrics=get_tenancy_metrics(),
    )


def get_conversation_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[TenantCache, Depends(get_tenant_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ConversationService:
    repository = SqlRecordRepository(
        session,
        Conversation,
        ConversationOut,
        order_by=Conversation.last_message_at,
        allow_unscoped=settings.allow_unscoped_records,
    )
    return ScopedRecordService(
        "conversations",
        repository,
        ConversationOut,
        cache,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        allow_unscoped=settings.allow_unscoped_records,
        logger=get_tenancy_logger(),
        metrics=get_tenancy_metrics(),
    )


def get_knowledge_base_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[TenantCache, Depends(get_tenant_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> KnowledgeBaseService:
    repository = SqlRecordRepository(
        session,
        KnowledgeBaseItem,
        KnowledgeBaseOut,
        order_by=KnowledgeBaseItem.created_at,
        allow_unscoped=settings.allow_unscoped_records,
    )
    return ScopedRecordService(
        "knowledge-base",
        repository,
        KnowledgeBaseOut,
        cache,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        allow_unscoped=settings.allow_unscoped_records,
        logger=get_tenancy_logger(),
        metrics=get_tenancy_metrics(),
    )


def get_message_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MessageRepository:
    return SqlMessageRepository(session)


def get_message_service(
    conversations: Annotated[ConversationService, Depends(get_conversation_service)],
    repository: Annotated[MessageRepository, Depends(get_message_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageService:
    return MessageService(
        conversations,
        repository,
        allow_unscoped=settings.allow_unscoped_records,
        metrics=get_tenancy_metrics(),
    )
