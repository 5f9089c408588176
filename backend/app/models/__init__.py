"""Models package - re-exports for convenience."""

from backend.app.models.common import (
    UNSCOPED,
    OrganizationScope,
    ScopedTo,
    Unscoped,
    scope_of,
)
from backend.app.models.organization import (
    InvitationCreate,
    InvitationOut,
    InviteStatus,
    MemberCreate,
    MembershipOut,
    OrganizationCreate,
    OrganizationOut,
    OrganizationUpdate,
    Plan,
    Role,
)
from backend.app.models.records import (
    ConversationCreate,
    ConversationOut,
    KnowledgeBaseCreate,
    KnowledgeBaseOut,
    MessageCreate,
    MessageOut,
    PlatformCreate,
    PlatformOut,
)

__all__ = [
    # Common
    "Unscoped",
    "ScopedTo",
    "OrganizationScope",
    "UNSCOPED",
    "scope_of",
    # Organization
    "Plan",
    "Role",
    "InviteStatus",
    "OrganizationCreate",
    "OrganizationUpdate",
    "OrganizationOut",
    "MemberCreate",
    "MembershipOut",
    "InvitationCreate",
    "InvitationOut",
    # Records
    "PlatformCreate",
    "PlatformOut",
    "ConversationCreate",
    "ConversationOut",
    "MessageCreate",
    "MessageOut",
    "KnowledgeBaseCreate",
    "KnowledgeBaseOut",
]
