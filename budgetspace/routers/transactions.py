import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import (
    get_current_user,
    get_in_workspace,
    get_or_404,
    require_workspace_role,
)
from budgetspace.models.budget import BudgetCategory, BudgetItem
from budgetspace.models.debt import Debt
from budgetspace.models.recurring import RecurringTransaction
from budgetspace.models.transaction import Transaction
from budgetspace.models.user import User
from budgetspace.schemas.transaction import (
    TransactionCreate,
    TransactionPage,
    TransactionResponse,
    TransactionSummary,
    TransactionUpdate,
)
from budgetspace.services.budget_overview import month_bounds, summarize_transactions

router = APIRouter(prefix="/transactions", tags=["transactions"])

_NULLABLE = (
    "category_id", "converted_amount", "exchange_rate", "description", "budget_item_id", "tags",
)

_REFERENCES = (
    ("category_id", BudgetCategory, "Category"),
    ("budget_item_id", BudgetItem, "Budget item"),
    ("debt_id", Debt, "Debt"),
    ("recurring_expense_id", RecurringTransaction, "Recurring transaction"),
)


async def _check_references(db: AsyncSession, workspace_id: uuid.UUID, data: dict) -> None:
    for field, model, label in _REFERENCES:
        if data.get(field) is not None:
            await get_in_workspace(db, model, data[field], workspace_id, label)


# ─── GET /transactions/summary ────────────────────────────────────────────────

@router.get("/summary", response_model=TransactionSummary)
async def monthly_summary(
    workspace_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2020, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    start, end = month_bounds(year, month)
    result = await db.execute(
        select(Transaction).where(
            Transaction.workspace_id == workspace_id,
            Transaction.transaction_date >= start,
            Transaction.transaction_date <= end,
        )
    )
    return summarize_transactions(result.scalars().all())


# ─── GET /transactions/recent ─────────────────────────────────────────────────

@router.get("/recent", response_model=list[TransactionResponse])
async def recent_transactions(
    workspace_id: uuid.UUID = Query(...),
    limit: int = Query(5, ge=1, le=20),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    result = await db.execute(
        select(Transaction)
        .where(Transaction.workspace_id == workspace_id)
        .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
        .limit(limit)
    )
    return result.scalars().all()


# ─── GET /transactions/ ───────────────────────────────────────────────────────

@router.get("/", response_model=TransactionPage)
async def list_transactions(
    workspace_id: uuid.UUID = Query(...),
    type: str = Query("all", pattern="^(all|income|expense)$"),
    category_id: uuid.UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Filtered page of the ledger, newest first, with the unpaged total."""
    await require_workspace_role(db, workspace_id, user.id)
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")

    filters = [Transaction.workspace_id == workspace_id]
    if type != "all":
        filters.append(Transaction.type == type)
    if category_id:
        filters.append(Transaction.category_id == category_id)
    if start_date:
        filters.append(Transaction.transaction_date >= start_date)
    if end_date:
        filters.append(Transaction.transaction_date <= end_date)

    total = (await db.execute(
        select(func.count()).select_from(Transaction).where(*filters)
    )).scalar_one()
    result = await db.execute(
        select(Transaction)
        .where(*filters)
        .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return {"transactions": result.scalars().all(), "total": total}


# ─── GET /transactions/{id} ───────────────────────────────────────────────────

@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    txn = await get_or_404(db, Transaction, transaction_id, "Transaction")
    await require_workspace_role(db, txn.workspace_id, user.id)
    return txn


# ─── POST /transactions/ ──────────────────────────────────────────────────────

@router.post("/", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    payload: TransactionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, payload.workspace_id, user.id, "editor")

    data = payload.model_dump()
    await _check_references(db, payload.workspace_id, data)
    data["type"] = payload.type.value
    data["currency"] = payload.currency.value
    txn = Transaction(created_by=user.id, **data)
    db.add(txn)
    await db.flush()
    await db.refresh(txn)
    return txn


# ─── PATCH /transactions/{id} ─────────────────────────────────────────────────

@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: uuid.UUID,
    payload: TransactionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Entries booked by the recurring rollover are read-only; they can only be
    deleted. Explicit nulls clear optional fields and are ignored elsewhere.
    """
    txn = await get_or_404(db, Transaction, transaction_id, "Transaction")
    await require_workspace_role(db, txn.workspace_id, user.id, "editor")
    if txn.recurring_expense_id is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Transactions created from a recurring template cannot be edited",
        )

    data = payload.model_dump(exclude_unset=True)
    await _check_references(db, txn.workspace_id, data)
    for key in ("type", "currency"):
        if data.get(key) is not None:
            data[key] = data[key].value
    for field, value in data.items():
        if value is None and field not in _NULLABLE:
            continue
        setattr(txn, field, value)

    await db.flush()
    await db.refresh(txn)
    return txn


# ─── DELETE /transactions/{id} ────────────────────────────────────────────────

@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    txn = await get_or_404(db, Transaction, transaction_id, "Transaction")
    await require_workspace_role(db, txn.workspace_id, user.id, "editor")
    await db.delete(txn)
