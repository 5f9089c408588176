"""Organization, membership and invitation endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from backend.app.api.auth import (
    get_current_user_id,
    get_directory,
    get_path_organization_context,
    require_role,
)
from backend.app.api.errors import NotFoundError
from backend.app.db.context import RequestContext
from backend.app.models.organization import (
    MANAGER_ROLES,
    InvitationCreate,
    InvitationOut,
    MemberCreate,
    MembershipOut,
    OrganizationCreate,
    OrganizationOut,
    OrganizationUpdate,
)
from backend.app.tenancy.directory import OrganizationDirectory

router = APIRouter(prefix="/organizations", tags=["organizations"])
invitations_router = APIRouter(prefix="/invitations", tags=["organizations"])

require_manager = require_role(*MANAGER_ROLES, context=get_path_organization_context)


@router.get("", response_model=list[OrganizationOut])
async def list_organizations(
    user_id: Annotated[str, Depends(get_current_user_id)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> list[OrganizationOut]:
    """List organizations the caller is an accepted member of."""
    organizations = await directory.organizations_for_user(user_id)
    return [OrganizationOut.model_validate(org) for org in organizations]


@router.post("", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationCreate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> OrganizationOut:
    """Create an organization owned by the caller."""
    organization = await directory.create_organization(body, owner_user_id=user_id)
    return OrganizationOut.model_validate(organization)


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization(
    ctx: Annotated[RequestContext, Depends(get_path_organization_context)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> OrganizationOut:
    organization = await directory.get_organization(ctx.organization_id)
    if organization is None:
        raise NotFoundError("Organization not found")
    return OrganizationOut.model_validate(organization)


@router.patch("/{organization_id}", response_model=OrganizationOut)
async def update_organization(
    body: OrganizationUpdate,
    ctx: Annotated[RequestContext, Depends(require_manager)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> OrganizationOut:
    organization = await directory.update_organization(ctx.organization_id, body)
    return OrganizationOut.model_validate(organization)


@router.get("/{organization_id}/members", response_model=list[MembershipOut])
async def list_members(
    ctx: Annotated[RequestContext, Depends(get_path_organization_context)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> list[MembershipOut]:
    members = await directory.list_members(ctx.organization_id)
    return [MembershipOut.model_validate(member) for member in members]


@router.post(
    "/{organization_id}/members",
    response_model=MembershipOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    body: MemberCreate,
    ctx: Annotated[RequestContext, Depends(require_manager)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> MembershipOut:
    """Add a member; re-adding an existing member updates the same row."""
    membership = await directory.add_member(
        ctx.organization_id, body.user_id, role=body.role, is_default=body.is_default
    )
    return MembershipOut.model_validate(membership)


@router.delete(
    "/{organization_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_member(
    member_id: int,
    ctx: Annotated[RequestContext, Depends(require_manager)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> Response:
    await directory.remove_member(ctx.organization_id, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{organization_id}/invitations",
    response_model=InvitationOut,
    status_code=status.HTTP_201_CREATED,
)
async def invite_member(
    body: InvitationCreate,
    ctx: Annotated[RequestContext, Depends(require_manager)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> InvitationOut:
    """Create a pending membership and return the token for the invitee."""
    membership = await directory.invite_member(ctx.organization_id, body.user_id, role=body.role)
    return InvitationOut.model_validate(membership)


@router.delete(
    "/{organization_id}/invitations/{member_id}", response_model=MembershipOut
)
async def revoke_invitation(
    member_id: int,
    ctx: Annotated[RequestContext, Depends(require_manager)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> MembershipOut:
    membership = await directory.revoke_invite(ctx.organization_id, member_id)
    return MembershipOut.model_validate(membership)


@invitations_router.post("/{token}/accept", response_model=MembershipOut)
async def accept_invitation(
    token: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    directory: Annotated[OrganizationDirectory, Depends(get_directory)],
) -> MembershipOut:
    """Accept an invitation addressed to the caller."""
    membership = await directory.accept_invite(token, user_id)
    return MembershipOut.model_validate(membership)
