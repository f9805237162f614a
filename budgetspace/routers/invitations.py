import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import get_current_user
from budgetspace.models.user import User
from budgetspace.models.workspace import Workspace, WorkspaceInvitation, WorkspaceMember
from budgetspace.schemas.workspace import (
    InvitationDecision,
    InvitationRespond,
    InvitationResponse,
    UserInvitationResponse,
)

router = APIRouter(prefix="/invitations", tags=["invitations"])


def _is_expired(invitation: WorkspaceInvitation, now: datetime) -> bool:
    expires = invitation.expires_at
    if expires is None:
        return False
    # Some drivers hand back naive UTC timestamps
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return expires < now


@router.get("/", response_model=list[UserInvitationResponse])
async def list_my_invitations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Pending invitations addressed to the caller's email, with workspace names."""
    result = await db.execute(
        select(WorkspaceInvitation, Workspace.name)
        .outerjoin(Workspace, Workspace.id == WorkspaceInvitation.workspace_id)
        .where(
            WorkspaceInvitation.email == user.email.lower(),
            WorkspaceInvitation.status == "pending",
        )
        .order_by(WorkspaceInvitation.created_at)
    )
    return [
        UserInvitationResponse(
            **InvitationResponse.model_validate(inv).model_dump(),
            workspace_name=name or "Unknown",
        )
        for inv, name in result.all()
    ]


@router.post("/{invitation_id}/respond", response_model=InvitationResponse)
async def respond_to_invitation(
    invitation_id: uuid.UUID,
    payload: InvitationRespond,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Accept or reject an invitation. Accepting adds the caller as a member."""
    invitation = await db.get(WorkspaceInvitation, invitation_id)
    if invitation is None:
        raise HTTPException(status_code=404, detail="Invitation not found")

    if invitation.email.lower() != user.email.lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This invitation is not for you",
        )
    if invitation.status != "pending":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This invitation has already been processed",
        )
    if _is_expired(invitation, datetime.now(timezone.utc)):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This invitation has expired",
        )

    if payload.status == InvitationDecision.accepted:
        existing = await db.execute(
            select(WorkspaceMember).where(
                WorkspaceMember.workspace_id == invitation.workspace_id,
                WorkspaceMember.user_id == user.id,
            )
        )
        if existing.scalar_one_or_none() is None:
            db.add(WorkspaceMember(
                workspace_id=invitation.workspace_id,
                user_id=user.id,
                user_email=user.email,
                role=invitation.role,
            ))

    invitation.status = payload.status.value
    await db.flush()
    await db.refresh(invitation)
    return invitation
