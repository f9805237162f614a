import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import get_current_user, require_workspace_role
from budgetspace.models.budget import BudgetCategory, BudgetItem, MonthlyBudget
from budgetspace.models.debt import Debt
from budgetspace.models.income import IncomeSource
from budgetspace.models.preferences import UserPreferences
from budgetspace.models.recurring import RecurringTransaction
from budgetspace.models.transaction import Transaction
from budgetspace.models.user import User
from budgetspace.models.workspace import Workspace, WorkspaceInvitation, WorkspaceMember
from budgetspace.schemas.workspace import (
    InvitationCreate,
    InvitationResponse,
    MemberResponse,
    MemberRoleUpdate,
    WorkspaceCreate,
    WorkspaceResponse,
    WorkspaceUpdate,
    WorkspaceWithRole,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

INVITATION_TTL = timedelta(days=7)

_DEFAULT_CATEGORIES: list[dict[str, Any]] = [
    {"name": "Housing",        "icon": "home",            "color": "#9B87F5"},
    {"name": "Food & Dining",  "icon": "utensils",        "color": "#22C55E"},
    {"name": "Transportation", "icon": "car",             "color": "#0EA5E9"},
    {"name": "Utilities",      "icon": "zap",             "color": "#F59E0B"},
    {"name": "Healthcare",     "icon": "heart",           "color": "#EF4444"},
    {"name": "Entertainment",  "icon": "film",            "color": "#D946EF"},
    {"name": "Shopping",       "icon": "shopping-bag",    "color": "#F97316"},
    {"name": "Education",      "icon": "book",            "color": "#6366F1"},
    {"name": "Personal Care",  "icon": "user",            "color": "#EC4899"},
    {"name": "Other",          "icon": "more-horizontal", "color": "#8E9196"},
]

# Child tables cleared before the workspace row itself, dependents first
_WORKSPACE_CHILDREN = (
    Transaction,
    BudgetItem,
    MonthlyBudget,
    RecurringTransaction,
    BudgetCategory,
    IncomeSource,
    Debt,
    WorkspaceInvitation,
    WorkspaceMember,
)


def _with_role(workspace: Workspace, role: str) -> WorkspaceWithRole:
    return WorkspaceWithRole(
        **WorkspaceResponse.model_validate(workspace).model_dump(),
        user_role=role,
    )


# ─── Workspaces ───────────────────────────────────────────────────────────────

@router.get("/", response_model=list[WorkspaceWithRole])
async def list_workspaces(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Workspaces the caller belongs to, each with the caller's role."""
    result = await db.execute(
        select(Workspace, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.user_id == user.id)
        .order_by(Workspace.created_at)
    )
    return [_with_role(ws, role) for ws, role in result.all()]


@router.post("/", response_model=WorkspaceWithRole, status_code=201)
async def create_workspace(
    payload: WorkspaceCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a workspace owned by the caller and seed its default categories."""
    workspace = Workspace(
        created_by=user.id,
        name=payload.name.strip(),
        description=(payload.description or "").strip() or None,
        currency="USD",
        language="en",
    )
    db.add(workspace)
    await db.flush()

    db.add(WorkspaceMember(
        workspace_id=workspace.id,
        user_id=user.id,
        user_email=user.email,
        role="owner",
    ))
    for defaults in _DEFAULT_CATEGORIES:
        db.add(BudgetCategory(
            workspace_id=workspace.id,
            created_by=user.id,
            is_default=True,
            **defaults,
        ))
    await db.flush()
    await db.refresh(workspace)

    logger.info("Workspace %s created by %s", workspace.id, user.id)
    return _with_role(workspace, "owner")


@router.get("/{workspace_id}", response_model=WorkspaceWithRole)
async def get_workspace(
    workspace_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    membership = await require_workspace_role(db, workspace_id, user.id)
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return _with_role(workspace, membership.role)


@router.patch("/{workspace_id}", response_model=WorkspaceWithRole)
async def update_workspace(
    workspace_id: uuid.UUID,
    payload: WorkspaceUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(
        db, workspace_id, user.id, "owner",
        detail="Only owners can update workspace settings",
    )
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail="Workspace not found")

    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        workspace.name = data["name"].strip()
    if "description" in data:
        workspace.description = (data["description"] or "").strip() or None

    await db.flush()
    await db.refresh(workspace)
    return _with_role(workspace, "owner")


@router.delete("/{workspace_id}", status_code=204)
async def delete_workspace(
    workspace_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a workspace together with everything recorded in it (owner only)."""
    await require_workspace_role(
        db, workspace_id, user.id, "owner",
        detail="Only owners can delete workspaces",
    )

    await db.execute(
        update(UserPreferences)
        .where(UserPreferences.default_workspace_id == workspace_id)
        .values(default_workspace_id=None)
    )
    for model in _WORKSPACE_CHILDREN:
        await db.execute(delete(model).where(model.workspace_id == workspace_id))
    await db.execute(delete(Workspace).where(Workspace.id == workspace_id))

    logger.info("Workspace %s deleted by %s", workspace_id, user.id)


# ─── Members ──────────────────────────────────────────────────────────────────

async def _member_in_workspace(
    db: AsyncSession, workspace_id: uuid.UUID, member_id: uuid.UUID
) -> WorkspaceMember:
    member = await db.get(WorkspaceMember, member_id)
    if member is None or member.workspace_id != workspace_id:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.get("/{workspace_id}/members", response_model=list[MemberResponse])
async def list_members(
    workspace_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    result = await db.execute(
        select(WorkspaceMember)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.created_at)
    )
    return result.scalars().all()


@router.patch("/{workspace_id}/members/{member_id}", response_model=MemberResponse)
async def update_member_role(
    workspace_id: uuid.UUID,
    member_id: uuid.UUID,
    payload: MemberRoleUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(
        db, workspace_id, user.id, "owner",
        detail="Only owners can change member roles",
    )
    member = await _member_in_workspace(db, workspace_id, member_id)
    if member.role == "owner":
        raise HTTPException(status_code=400, detail="Cannot change owner role")

    member.role = payload.role.value
    await db.flush()
    await db.refresh(member)
    return member


@router.delete("/{workspace_id}/members/{member_id}", status_code=204)
async def remove_member(
    workspace_id: uuid.UUID,
    member_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(
        db, workspace_id, user.id, "owner",
        detail="Only owners can remove members",
    )
    member = await _member_in_workspace(db, workspace_id, member_id)
    if member.role == "owner":
        raise HTTPException(status_code=400, detail="Cannot remove the owner")

    await db.delete(member)


# ─── Invitations (workspace side) ─────────────────────────────────────────────

@router.post("/{workspace_id}/invitations", response_model=InvitationResponse, status_code=201)
async def invite_member(
    workspace_id: uuid.UUID,
    payload: InvitationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(
        db, workspace_id, user.id, "editor",
        detail="You do not have permission to invite members",
    )
    email = payload.email.lower()

    existing_member = await db.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_email == email,
        )
    )
    if existing_member.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member of this workspace",
        )

    pending = await db.execute(
        select(WorkspaceInvitation).where(
            WorkspaceInvitation.workspace_id == workspace_id,
            WorkspaceInvitation.email == email,
            WorkspaceInvitation.status == "pending",
        )
    )
    if pending.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An invitation is already pending for this email",
        )

    invitation = WorkspaceInvitation(
        workspace_id=workspace_id,
        email=email,
        role=payload.role.value,
        status="pending",
        invited_by=user.id,
        expires_at=datetime.now(timezone.utc) + INVITATION_TTL,
    )
    db.add(invitation)
    await db.flush()
    await db.refresh(invitation)
    return invitation


@router.get("/{workspace_id}/invitations", response_model=list[InvitationResponse])
async def list_pending_invitations(
    workspace_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    result = await db.execute(
        select(WorkspaceInvitation)
        .where(
            WorkspaceInvitation.workspace_id == workspace_id,
            WorkspaceInvitation.status == "pending",
        )
        .order_by(WorkspaceInvitation.created_at)
    )
    return result.scalars().all()


@router.delete("/{workspace_id}/invitations/{invitation_id}", status_code=204)
async def cancel_invitation(
    workspace_id: uuid.UUID,
    invitation_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(
        db, workspace_id, user.id, "editor",
        detail="You do not have permission to cancel invitations",
    )
    invitation = await db.get(WorkspaceInvitation, invitation_id)
    if invitation is None or invitation.workspace_id != workspace_id:
        raise HTTPException(status_code=404, detail="Invitation not found")
    await db.delete(invitation)
