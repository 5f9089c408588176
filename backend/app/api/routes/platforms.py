"""Platform connection endpoints - stored records only, no external API calls."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from backend.app.api.auth import get_request_context
from backend.app.api.dependencies import PlatformService, get_platform_service
from backend.app.db.context import RequestContext
from backend.app.models.records import PlatformCreate, PlatformOut

router = APIRouter(prefix="/platforms", tags=["platforms"])


@router.get("", response_model=list[PlatformOut])
async def list_platforms(
    response: Response,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[PlatformService, Depends(get_platform_service)],
) -> list[PlatformOut]:
    response.headers["Cache-Control"] = "private"
    return await service.list_visible(ctx)


@router.post("", response_model=PlatformOut, status_code=status.HTTP_201_CREATED)
async def create_platform(
    body: PlatformCreate,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[PlatformService, Depends(get_platform_service)],
) -> PlatformOut:
    return await service.create(ctx, body)


@router.get("/{platform_id}", response_model=PlatformOut)
async def get_platform(
    platform_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[PlatformService, Depends(get_platform_service)],
) -> PlatformOut:
    return await service.get(ctx, platform_id)


@router.post("/{platform_id}/disconnect", response_model=PlatformOut)
async def disconnect_platform(
    platform_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[PlatformService, Depends(get_platform_service)],
) -> PlatformOut:
    """Mark a platform disconnected and drop its stored credentials."""
    return await service.update(
        ctx,
        platform_id,
        {
            "is_connected": False,
            "access_token": None,
            "refresh_token": None,
            "token_expiry": None,
        },
    )


@router.delete("/{platform_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_platform(
    platform_id: int,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[PlatformService, Depends(get_platform_service)],
) -> Response:
    await service.delete(ctx, platform_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
