"""Conversation and message endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from backend.app.api.auth import get_request_context
from backend.app.api.dependencies import (
    ConversationService,
    PlatformService,
    get_conversation_service,
    get_message_service,
    get_platform_service,
)
from backend.app.db.context import RequestContext
from backend.app.models.records import (
    ConversationCreate,
    ConversationOut,
    MessageCreate,
    MessageOut,
)
from backend.app.tenancy.service import MessageService

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationOut])
async def list_conversations(
    response: Response,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> list[ConversationOut]:
    response.headers["Cache-Control"] = "private"
    return await service.list_visible(ctx)


@router.post("", response_model=ConversationOut, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    body: ConversationCreate,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ConversationService, Depends(get_conversation_service)],
    platforms: Annotated[PlatformService, Depends(get_platform_service)],
) -> ConversationOut:
    """Create a conversation, optionally on a platform visible to the caller."""
    if body.platform_id is not None:
        await platforms.get(ctx, body.platform_id)
    return await service.create(ctx, body)


@router.get("/{conversation_id}", response_model=ConversationOut)
async def get_conversation(
    conversation_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> ConversationOut:
    return await service.get(ctx, conversation_id)


@router.get("/{conversation_id}/messages", response_model=list[MessageOut])
async def list_messages(
    conversation_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    messages: Annotated[MessageService, Depends(get_message_service)],
) -> list[MessageOut]:
    return await messages.list_visible(ctx, conversation_id)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_message(
    conversation_id: int,
    body: MessageCreate,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    messages: Annotated[MessageService, Depends(get_message_service)],
) -> MessageOut:
    return await messages.create(ctx, conversation_id, body)
