"""Knowledge-base endpoints.

Documents arrive with their text already extracted; upload parsing happens
upstream.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from backend.app.api.auth import get_request_context
from backend.app.api.dependencies import KnowledgeBaseService, get_knowledge_base_service
from backend.app.db.context import RequestContext
from backend.app.models.records import KnowledgeBaseCreate, KnowledgeBaseOut

router = APIRouter(prefix="/knowledge-base", tags=["knowledge-base"])


@router.get("", response_model=list[KnowledgeBaseOut])
async def list_knowledge_base(
    response: Response,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[KnowledgeBaseService, Depends(get_knowledge_base_service)],
) -> list[KnowledgeBaseOut]:
    response.headers["Cache-Control"] = "private"
    return await service.list_visible(ctx)


@router.post("", response_model=KnowledgeBaseOut, status_code=status.HTTP_201_CREATED)
async def create_knowledge_base_item(
    body: KnowledgeBaseCreate,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[KnowledgeBaseService, Depends(get_knowledge_base_service)],
) -> KnowledgeBaseOut:
    """Store a document in the resolved organization, whatever the body claims."""
    return await service.create(ctx, body)


@router.get("/{item_id}", response_model=KnowledgeBaseOut)
async def get_knowledge_base_item(
    item_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[KnowledgeBaseService, Depends(get_knowledge_base_service)],
) -> KnowledgeBaseOut:
    return await service.get(ctx, item_id)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_knowledge_base_item(
    item_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[KnowledgeBaseService, Depends(get_knowledge_base_service)],
) -> Response:
    await service.delete(ctx, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
