import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import get_current_user, get_or_404, require_workspace_role
from budgetspace.models.income import IncomeSource
from budgetspace.models.user import User
from budgetspace.schemas.income import (
    IncomeSourceCreate,
    IncomeSourceResponse,
    IncomeSourceUpdate,
)

router = APIRouter(prefix="/income-sources", tags=["income"])


@router.get("/", response_model=list[IncomeSourceResponse])
async def list_income_sources(
    workspace_id: uuid.UUID = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    result = await db.execute(
        select(IncomeSource)
        .where(IncomeSource.workspace_id == workspace_id)
        .order_by(IncomeSource.created_at.desc())
    )
    return result.scalars().all()


@router.post("/", response_model=IncomeSourceResponse, status_code=201)
async def create_income_source(
    payload: IncomeSourceCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, payload.workspace_id, user.id, "editor")
    source = IncomeSource(
        workspace_id=payload.workspace_id,
        created_by=user.id,
        name=payload.name.strip(),
        type=payload.type.value,
        amount=payload.amount,
        currency=payload.currency.value,
        frequency=payload.frequency.value,
        is_active=payload.is_active,
        notes=payload.notes,
    )
    db.add(source)
    await db.flush()
    await db.refresh(source)
    return source


@router.patch("/{source_id}", response_model=IncomeSourceResponse)
async def update_income_source(
    source_id: uuid.UUID,
    payload: IncomeSourceUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    source = await get_or_404(db, IncomeSource, source_id, "Income source")
    await require_workspace_role(db, source.workspace_id, user.id, "editor")

    data = payload.model_dump(exclude_unset=True)
    for key in ("type", "currency", "frequency"):
        if data.get(key) is not None:
            data[key] = data[key].value
    for field, value in data.items():
        if value is None and field != "notes":
            continue
        setattr(source, field, value)

    await db.flush()
    await db.refresh(source)
    return source


@router.post("/{source_id}/toggle", response_model=IncomeSourceResponse)
async def toggle_income_source(
    source_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    source = await get_or_404(db, IncomeSource, source_id, "Income source")
    await require_workspace_role(db, source.workspace_id, user.id, "editor")

    source.is_active = not source.is_active
    await db.flush()
    await db.refresh(source)
    return source


@router.delete("/{source_id}", status_code=204)
async def delete_income_source(
    source_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    source = await get_or_404(db, IncomeSource, source_id, "Income source")
    await require_workspace_role(db, source.workspace_id, user.id, "editor")
    await db.delete(source)
