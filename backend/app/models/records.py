"""Tenant-scoped record models (platforms, conversations, messages, knowledge base).

Create models deliberately accept an ``organization_id`` so that a client
claim can be observed and discarded; the server always stamps the resolved
organization before anything is written.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PlatformCreate(BaseModel):
    """Request body for POST /platforms."""

    name: str = Field(..., min_length=1, max_length=50, pattern="^[a-z0-9_-]+$")
    display_name: str = Field(..., min_length=1, max_length=100)
    is_connected: bool = False
    organization_id: str | None = None


class PlatformOut(BaseModel):
    """Platform connection without credentials."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    organization_id: str | None
    name: str
    display_name: str
    is_connected: bool
    created_at: datetime
    updated_at: datetime


class ConversationCreate(BaseModel):
    """Request body for POST /conversations."""

    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_avatar: str | None = None
    platform_id: int | None = None
    organization_id: str | None = None


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    organization_id: str | None
    platform_id: int | None
    customer_name: str
    customer_avatar: str | None
    last_message: str | None
    last_message_at: datetime | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MessageCreate(BaseModel):
    """Request body for POST /conversations/{id}/messages."""

    content: str = Field(..., min_length=1)
    is_from_customer: bool = False
    is_ai_generated: bool = False
    organization_id: str | None = None


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    organization_id: str | None
    content: str
    is_from_customer: bool
    is_ai_generated: bool
    created_at: datetime


class KnowledgeBaseCreate(BaseModel):
    """Request body for POST /knowledge-base (already-extracted content)."""

    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., pattern="^(pdf|docx|txt|md|csv|other)$")
    file_size: int = Field(..., ge=0)
    content: str | None = None
    organization_id: str | None = None


class KnowledgeBaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    organization_id: str | None
    file_name: str
    file_type: str
    file_size: int
    content: str | None
    created_at: datetime
    updated_at: datetime
