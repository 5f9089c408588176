"""Organization and membership API models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class Plan(str, Enum):
    """Subscription tier of an organization."""

    basic = "basic"
    professional = "professional"
    enterprise = "enterprise"


class Role(str, Enum):
    """Role of a user inside one organization."""

    owner = "owner"
    admin = "admin"
    member = "member"
    readonly = "readonly"


MANAGER_ROLES = (Role.owner, Role.admin)


class InviteStatus(str, Enum):
    """Lifecycle of a membership invitation."""

    pending = "pending"
    accepted = "accepted"
    revoked = "revoked"


class OrganizationCreate(BaseModel):
    """Request body for POST /organizations."""

    name: str = Field(..., min_length=3, max_length=100)
    plan: Plan = Plan.basic
    industry: str | None = Field(None, max_length=100)
    size: str | None = Field(None, max_length=50)
    website: HttpUrl | None = None
    logo: str | None = None


class OrganizationUpdate(BaseModel):
    """Request body for PATCH /organizations/{id}; all fields optional."""

    name: str | None = Field(None, min_length=3, max_length=100)
    plan: Plan | None = None
    industry: str | None = Field(None, max_length=100)
    size: str | None = Field(None, max_length=50)
    website: HttpUrl | None = None
    logo: str | None = None


class OrganizationOut(BaseModel):
    """Organization as returned to members."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    plan: Plan
    industry: str | None = None
    size: str | None = None
    website: str | None = None
    logo: str | None = None
    created_at: datetime
    updated_at: datetime


class MemberCreate(BaseModel):
    """Request body for POST /organizations/{id}/members."""

    user_id: str = Field(..., min_length=1, max_length=128)
    role: Role = Role.member
    is_default: bool = False


class InvitationCreate(BaseModel):
    """Request body for POST /organizations/{id}/invitations."""

    user_id: str = Field(..., min_length=1, max_length=128)
    role: Role = Role.member


class MembershipOut(BaseModel):
    """Membership row as returned to organization members."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    organization_id: str
    role: Role
    invite_status: InviteStatus
    is_default: bool
    joined_at: datetime


class InvitationOut(MembershipOut):
    """Pending membership plus the token the invitee must present."""

    invite_token: str
    invite_expires_at: datetime
