import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.config import settings
from budgetspace.core.database import get_db
from budgetspace.core.deps import get_current_session, get_current_user
from budgetspace.core.limiter import limiter
from budgetspace.core.redis import (
    clear_login_failures,
    is_locked_out,
    record_login_failure,
    revoke_session,
)
from budgetspace.core.security import Session, hash_password, sign_session, verify_password
from budgetspace.models.preferences import UserPreferences
from budgetspace.models.user import User
from budgetspace.schemas.user import UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# Plain http is allowed only in development
_SECURE = settings.environment != "development"


def _set_session_cookie(response: Response, user: User) -> None:
    token = sign_session(Session(user_id=user.id, email=user.email, name=user.full_name))
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=_SECURE,
        samesite="lax",
        max_age=settings.session_expire_days * 86400,
        path="/",
    )


@router.post("/sign-up", response_model=UserResponse, status_code=201)
@limiter.limit("5/hour")
async def sign_up(
    request: Request,
    payload: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    email = payload.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=email,
        hashed_password=hash_password(payload.password),
        full_name=payload.full_name.strip(),
    )
    db.add(user)
    await db.flush()
    db.add(UserPreferences(user_id=user.id))
    await db.flush()
    await db.refresh(user)

    logger.info("New user %s signed up", user.id)
    _set_session_cookie(response, user)
    return user


@router.post("/sign-in", response_model=UserResponse)
@limiter.limit("10/minute;30/hour")
async def sign_in(
    request: Request,
    payload: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    email = payload.email.lower()

    # Locked emails are refused before any password check
    if await is_locked_out(email):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Account temporarily locked due to too many failed attempts. Try again in 15 minutes.",
        )

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(payload.password, user.hashed_password):
        # Unknown emails count as failures too
        await record_login_failure(email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    await clear_login_failures(email)
    _set_session_cookie(response, user)
    return user


@router.post("/sign-out", status_code=204)
async def sign_out(response: Response, session: Session = Depends(get_current_session)):
    if session.jti and session.expires_at:
        ttl = max(0, int((session.expires_at - datetime.now(timezone.utc)).total_seconds()))
        await revoke_session(session.jti, ttl)

    response.delete_cookie(key=settings.session_cookie_name, path="/")


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user
