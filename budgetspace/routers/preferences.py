import enum
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.config import settings
from budgetspace.core.database import get_db
from budgetspace.core.deps import get_current_user, require_workspace_role
from budgetspace.models.preferences import ExchangeRate, UserPreferences
from budgetspace.models.user import User
from budgetspace.schemas.preferences import (
    DefaultWorkspaceSet,
    ExchangeRateResponse,
    ExchangeRateSet,
    PreferencesResponse,
    PreferencesUpdate,
)
from budgetspace.schemas.transaction import Currency

router = APIRouter(tags=["preferences"])


async def _get_or_create_preferences(db: AsyncSession, user: User) -> UserPreferences:
    result = await db.execute(select(UserPreferences).where(UserPreferences.user_id == user.id))
    prefs = result.scalar_one_or_none()
    if prefs is None:
        prefs = UserPreferences(user_id=user.id)
        db.add(prefs)
        await db.flush()
        await db.refresh(prefs)
    return prefs


# ─── Preferences ──────────────────────────────────────────────────────────────

@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the caller's preferences, creating the defaults on first read."""
    return await _get_or_create_preferences(db, user)


@router.patch("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    payload: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    prefs = await _get_or_create_preferences(db, user)
    data = payload.model_dump(exclude_unset=True)

    if data.get("default_workspace_id") is not None:
        await require_workspace_role(db, data["default_workspace_id"], user.id)
    for field, value in data.items():
        if isinstance(value, enum.Enum):
            value = value.value
        setattr(prefs, field, value)

    await db.flush()
    await db.refresh(prefs)
    return prefs


@router.put("/preferences/default-workspace", response_model=PreferencesResponse)
async def set_default_workspace(
    payload: DefaultWorkspaceSet,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if payload.workspace_id is not None:
        await require_workspace_role(db, payload.workspace_id, user.id)
    prefs = await _get_or_create_preferences(db, user)
    prefs.default_workspace_id = payload.workspace_id
    await db.flush()
    await db.refresh(prefs)
    return prefs


# ─── Exchange rates ───────────────────────────────────────────────────────────

def _default_rate(from_currency: str, to_currency: str) -> Decimal:
    usd_uzs = Decimal(str(settings.default_exchange_rate_usd_uzs))
    if (from_currency, to_currency) == ("USD", "UZS"):
        return usd_uzs
    return Decimal(1) / usd_uzs


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@router.get("/exchange-rates", response_model=ExchangeRateResponse)
async def get_exchange_rate(
    from_currency: Currency = Query(..., alias="from"),
    to_currency: Currency = Query(..., alias="to"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Same-currency pairs are 1. Otherwise the newest cached rate is used while
    it is younger than the configured TTL; past that the configured default
    rate is cached and returned.
    """
    now = datetime.now(timezone.utc)
    src, dst = from_currency.value, to_currency.value
    if src == dst:
        return {"from_currency": src, "to_currency": dst, "rate": Decimal(1), "fetched_at": now}

    result = await db.execute(
        select(ExchangeRate)
        .where(ExchangeRate.from_currency == src, ExchangeRate.to_currency == dst)
        .order_by(ExchangeRate.fetched_at.desc())
        .limit(1)
    )
    cached = result.scalar_one_or_none()
    ttl = timedelta(minutes=settings.exchange_rate_ttl_minutes)
    if cached and now - _aware(cached.fetched_at) < ttl:
        return cached

    rate = ExchangeRate(
        created_by=user.id,
        from_currency=src,
        to_currency=dst,
        rate=_default_rate(src, dst),
        fetched_at=now,
    )
    db.add(rate)
    await db.flush()
    return rate


@router.post("/exchange-rates", response_model=ExchangeRateResponse, status_code=201)
async def set_exchange_rate(
    payload: ExchangeRateSet,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Store a rate together with its inverse so both directions resolve."""
    now = datetime.now(timezone.utc)
    src, dst = payload.from_currency.value, payload.to_currency.value
    rate = ExchangeRate(
        created_by=user.id, from_currency=src, to_currency=dst,
        rate=payload.rate, fetched_at=now,
    )
    db.add(rate)
    if src != dst:
        db.add(ExchangeRate(
            created_by=user.id, from_currency=dst, to_currency=src,
            rate=Decimal(1) / payload.rate, fetched_at=now,
        ))
    await db.flush()
    return rate
