import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import (
    get_current_user,
    get_in_workspace,
    get_or_404,
    require_workspace_role,
)
from budgetspace.models.budget import BudgetCategory, MonthlyBudget
from budgetspace.models.transaction import Transaction
from budgetspace.models.user import User
from budgetspace.schemas.budget import (
    BudgetCopyResponse,
    BudgetOverviewResponse,
    BudgetResponse,
    BudgetSet,
)
from budgetspace.services.budget_overview import build_overview, month_bounds

router = APIRouter(prefix="/budgets", tags=["budgets"])


def _previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


async def _budgets_for_month(
    db: AsyncSession, workspace_id: uuid.UUID, year: int, month: int
) -> list[MonthlyBudget]:
    result = await db.execute(
        select(MonthlyBudget).where(
            MonthlyBudget.workspace_id == workspace_id,
            MonthlyBudget.year == year,
            MonthlyBudget.month == month,
        )
    )
    return list(result.scalars().all())


# ─── GET /budgets/overview ────────────────────────────────────────────────────

@router.get("/overview", response_model=BudgetOverviewResponse)
async def get_budget_overview(
    workspace_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Planned vs. spent per category for one month, plus totals."""
    await require_workspace_role(db, workspace_id, user.id)

    categories = (await db.execute(
        select(BudgetCategory)
        .where(BudgetCategory.workspace_id == workspace_id)
        .order_by(BudgetCategory.name)
    )).scalars().all()
    budgets = await _budgets_for_month(db, workspace_id, year, month)

    start, end = month_bounds(year, month)
    transactions = (await db.execute(
        select(Transaction).where(
            Transaction.workspace_id == workspace_id,
            Transaction.type == "expense",
            Transaction.transaction_date >= start,
            Transaction.transaction_date <= end,
        )
    )).scalars().all()

    return build_overview(categories, budgets, transactions)


# ─── POST /budgets/copy-from-previous-month ───────────────────────────────────

@router.post("/copy-from-previous-month", response_model=BudgetCopyResponse, status_code=201)
async def copy_from_previous_month(
    workspace_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Copy last month's budgets into the target month. Skips categories already planned."""
    await require_workspace_role(db, workspace_id, user.id, "editor")

    prev_year, prev_month = _previous_month(year, month)
    previous = await _budgets_for_month(db, workspace_id, prev_year, prev_month)
    if not previous:
        raise HTTPException(
            status_code=404,
            detail=f"No budgets found for {prev_year}-{prev_month:02d} to copy from.",
        )

    planned = {b.category_id for b in await _budgets_for_month(db, workspace_id, year, month)}
    created = []
    for src in previous:
        if src.category_id in planned:
            continue
        budget = MonthlyBudget(
            workspace_id=workspace_id,
            created_by=user.id,
            category_id=src.category_id,
            year=year,
            month=month,
            planned_amount=src.planned_amount,
            currency=src.currency,
        )
        db.add(budget)
        await db.flush()
        await db.refresh(budget)
        created.append(budget)

    return {"created": created, "count": len(created)}


# ─── GET /budgets/ ────────────────────────────────────────────────────────────

@router.get("/", response_model=list[BudgetResponse])
async def list_budgets(
    workspace_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    return await _budgets_for_month(db, workspace_id, year, month)


# ─── PUT /budgets/ ────────────────────────────────────────────────────────────

@router.put("/", response_model=BudgetResponse)
async def set_budget(
    payload: BudgetSet,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create or replace the planned amount for a category/month."""
    await require_workspace_role(db, payload.workspace_id, user.id, "editor")

    await get_in_workspace(db, BudgetCategory, payload.category_id, payload.workspace_id, "Category")

    result = await db.execute(
        select(MonthlyBudget).where(
            MonthlyBudget.workspace_id == payload.workspace_id,
            MonthlyBudget.category_id == payload.category_id,
            MonthlyBudget.year == payload.year,
            MonthlyBudget.month == payload.month,
        )
    )
    budget = result.scalar_one_or_none()
    if budget:
        budget.planned_amount = payload.planned_amount
        budget.currency = payload.currency.value
    else:
        budget = MonthlyBudget(
            workspace_id=payload.workspace_id,
            created_by=user.id,
            category_id=payload.category_id,
            year=payload.year,
            month=payload.month,
            planned_amount=payload.planned_amount,
            currency=payload.currency.value,
        )
        db.add(budget)

    await db.flush()
    await db.refresh(budget)
    return budget


# ─── DELETE /budgets/{id} ─────────────────────────────────────────────────────

@router.delete("/{budget_id}", status_code=204)
async def delete_budget(
    budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    budget = await get_or_404(db, MonthlyBudget, budget_id, "Budget")
    await require_workspace_role(db, budget.workspace_id, user.id, "editor")
    await db.delete(budget)
