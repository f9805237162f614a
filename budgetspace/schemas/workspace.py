import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class Role(str, enum.Enum):
    owner = "owner"
    editor = "editor"
    viewer = "viewer"


class AssignableRole(str, enum.Enum):
    """Roles an owner can hand out; ownership itself is never transferred."""
    editor = "editor"
    viewer = "viewer"


class InvitationDecision(str, enum.Enum):
    accepted = "accepted"
    rejected = "rejected"


class WorkspaceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class WorkspaceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class WorkspaceResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    currency: str
    language: str
    created_by: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class WorkspaceWithRole(WorkspaceResponse):
    user_role: str


class MemberResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    user_email: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberRoleUpdate(BaseModel):
    role: AssignableRole


class InvitationCreate(BaseModel):
    email: EmailStr
    role: AssignableRole


class InvitationResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    email: str
    role: str
    status: str
    invited_by: uuid.UUID
    expires_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserInvitationResponse(InvitationResponse):
    workspace_name: str


class InvitationRespond(BaseModel):
    status: InvitationDecision
