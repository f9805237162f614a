import logging
import uuid
from decimal import Decimal

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
from budgetspace.models.budget import BudgetCategory, BudgetItem
from budgetspace.models.recurring import RecurringTransaction
from budgetspace.models.transaction import Transaction
from budgetspace.models.user import User
from budgetspace.schemas.budget import (
    BudgetItemCreate,
    BudgetItemResponse,
    BudgetItemUpdate,
    BudgetItemWithActual,
    PopulateResponse,
)
from budgetspace.services.budget_overview import actuals_by_budget_item, month_bounds
from budgetspace.services.schedule import occurs_in_month

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/budget-items", tags=["budget-items"])


async def _items_for_month(
    db: AsyncSession, workspace_id: uuid.UUID, year: int, month: int
) -> list[BudgetItem]:
    result = await db.execute(
        select(BudgetItem)
        .where(
            BudgetItem.workspace_id == workspace_id,
            BudgetItem.year == year,
            BudgetItem.month == month,
        )
        .order_by(BudgetItem.created_at)
    )
    return list(result.scalars().all())


# ─── GET /budget-items/ ───────────────────────────────────────────────────────

@router.get("/", response_model=list[BudgetItemWithActual])
async def list_budget_items(
    workspace_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Items planned for a month, each with the net amount of its linked transactions."""
    await require_workspace_role(db, workspace_id, user.id)
    items = await _items_for_month(db, workspace_id, year, month)
    if not items:
        return []

    start, end = month_bounds(year, month)
    linked = (await db.execute(
        select(Transaction).where(
            Transaction.workspace_id == workspace_id,
            Transaction.budget_item_id.in_([i.id for i in items]),
            Transaction.transaction_date >= start,
            Transaction.transaction_date <= end,
        )
    )).scalars().all()
    actuals = actuals_by_budget_item(linked)

    return [
        BudgetItemWithActual(
            **BudgetItemResponse.model_validate(item).model_dump(),
            actual_amount=actuals.get(item.id, Decimal("0")),
        )
        for item in items
    ]


# ─── POST /budget-items/populate-from-recurring ───────────────────────────────

@router.post("/populate-from-recurring", response_model=PopulateResponse, status_code=201)
async def populate_from_recurring(
    workspace_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a fixed item for every active recurring expense whose schedule
    touches the month. Templates that already have an item this month are skipped.
    """
    await require_workspace_role(db, workspace_id, user.id, "editor")

    templates = (await db.execute(
        select(RecurringTransaction)
        .where(
            RecurringTransaction.workspace_id == workspace_id,
            RecurringTransaction.type == "expense",
            RecurringTransaction.is_active == True,  # noqa: E712
        )
        .order_by(RecurringTransaction.name)
    )).scalars().all()

    linked = {
        i.recurring_expense_id
        for i in await _items_for_month(db, workspace_id, year, month)
        if i.recurring_expense_id
    }

    created = []
    for tpl in templates:
        if tpl.id in linked or not occurs_in_month(tpl.start_date, tpl.end_date, year, month):
            continue
        item = BudgetItem(
            workspace_id=workspace_id,
            created_by=user.id,
            year=year,
            month=month,
            category_id=tpl.category_id,
            recurring_expense_id=tpl.id,
            name=tpl.name,
            quantity_type="fixed",
            quantity=Decimal("1"),
            unit_price=tpl.amount,
            planned_amount=tpl.amount,
            is_purchased=False,
            currency=tpl.currency,
        )
        db.add(item)
        await db.flush()
        await db.refresh(item)
        created.append(item)

    logger.info(
        "Populated %d budget item(s) for workspace %s %d-%02d",
        len(created), workspace_id, year, month,
    )
    return {"created": len(created), "items": created}


# ─── POST /budget-items/ ──────────────────────────────────────────────────────

@router.post("/", response_model=BudgetItemResponse, status_code=201)
async def create_budget_item(
    payload: BudgetItemCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, payload.workspace_id, user.id, "editor")
    if payload.category_id is not None:
        await get_in_workspace(db, BudgetCategory, payload.category_id, payload.workspace_id, "Category")
    if payload.recurring_expense_id is not None:
        await get_in_workspace(
            db, RecurringTransaction, payload.recurring_expense_id, payload.workspace_id,
            "Recurring transaction",
        )

    data = payload.model_dump()
    data["name"] = data["name"].strip()
    data["quantity_type"] = payload.quantity_type.value
    data["currency"] = payload.currency.value
    item = BudgetItem(created_by=user.id, **data)
    db.add(item)
    await db.flush()
    await db.refresh(item)
    return item


# ─── PATCH /budget-items/{id} ─────────────────────────────────────────────────

@router.patch("/{item_id}", response_model=BudgetItemResponse)
async def update_budget_item(
    item_id: uuid.UUID,
    payload: BudgetItemUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    item = await get_or_404(db, BudgetItem, item_id, "Budget item")
    await require_workspace_role(db, item.workspace_id, user.id, "editor")

    data = payload.model_dump(exclude_unset=True)
    if "name" in data:
        if not data["name"]:
            raise HTTPException(status_code=422, detail="Name cannot be empty")
        data["name"] = data["name"].strip()
    if data.get("category_id") is not None:
        await get_in_workspace(db, BudgetCategory, data["category_id"], item.workspace_id, "Category")
    if data.get("quantity_type") is not None:
        data["quantity_type"] = data["quantity_type"].value
    for field, value in data.items():
        if value is None and field != "category_id":
            continue
        setattr(item, field, value)

    await db.flush()
    await db.refresh(item)
    return item


# ─── DELETE /budget-items/{id} ────────────────────────────────────────────────

@router.delete("/{item_id}", status_code=204)
async def delete_budget_item(
    item_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    item = await get_or_404(db, BudgetItem, item_id, "Budget item")
    await require_workspace_role(db, item.workspace_id, user.id, "editor")
    await db.delete(item)
