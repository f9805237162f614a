import uuid
from typing import Any, TypeVar

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.config import settings
from budgetspace.core.database import get_db
from budgetspace.core.redis import is_revoked
from budgetspace.core.security import Session, verify_session
from budgetspace.models.user import User
from budgetspace.models.workspace import WorkspaceMember

ModelT = TypeVar("ModelT")


# ─── Session / user ────────────────────────────────────────────────────────────

async def get_current_session(request: Request) -> Session:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    session = verify_session(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )

    if session.jti and await is_revoked(session.jti):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has been revoked",
        )
    return session


async def get_current_user(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, session.user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


# ─── Workspace roles ───────────────────────────────────────────────────────────

ROLE_RANK: dict[str, int] = {"viewer": 0, "editor": 1, "owner": 2}

_ROLE_DENIED: dict[str, str] = {
    "editor": "You do not have permission to edit",
    "owner": "Only workspace owners can do this",
}


async def require_workspace_role(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    user_id: uuid.UUID,
    min_role: str = "viewer",
    detail: str | None = None,
) -> WorkspaceMember:
    """Return the caller's membership or raise 403 if absent or below ``min_role``."""
    result = await db.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    if ROLE_RANK.get(membership.role, -1) < ROLE_RANK[min_role]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail or _ROLE_DENIED.get(min_role, "Access denied"),
        )
    return membership


async def get_or_404(db: AsyncSession, model: type[ModelT], row_id: Any, label: str) -> ModelT:
    row = await db.get(model, row_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


async def get_in_workspace(
    db: AsyncSession, model: type[ModelT], row_id: Any, workspace_id: uuid.UUID, label: str
) -> ModelT:
    """Like ``get_or_404``, but rows of another workspace are reported as missing."""
    row = await get_or_404(db, model, row_id, label)
    if row.workspace_id != workspace_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row
