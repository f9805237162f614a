import logging
import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import (
    get_current_user,
    get_in_workspace,
    get_or_404,
    require_workspace_role,
)
from budgetspace.core.redis import acquire_process_lock, release_process_lock
from budgetspace.models.budget import BudgetCategory
from budgetspace.models.recurring import RecurringTransaction
from budgetspace.models.transaction import Transaction
from budgetspace.models.user import User
from budgetspace.schemas.recurring import (
    ProcessDueResponse,
    RecurringTransactionCreate,
    RecurringTransactionResponse,
    RecurringTransactionUpdate,
)
from budgetspace.services.rollover import (
    RolloverAborted,
    SqlLedgerStore,
    SqlTemplateStore,
    process_due,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring", tags=["recurring"])

_ENUM_FIELDS = ("type", "currency", "frequency")
_NULLABLE = ("category_id", "end_date", "notes")


async def _already_booked(db: AsyncSession, rec: RecurringTransaction) -> bool:
    """True if the ledger already holds the occurrence at the template's next due date."""
    result = await db.execute(
        select(Transaction.id)
        .where(
            Transaction.recurring_expense_id == rec.id,
            Transaction.transaction_date == rec.next_due_date,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _reactivate_check(db: AsyncSession, rec: RecurringTransaction) -> None:
    # Rollover leaves next_due_date on the last booked occurrence when it
    # deactivates a finished template
    if await _already_booked(db, rec):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This schedule has ended; set a later start_date to restart it",
        )


# ─── POST /recurring/process-due ──────────────────────────────────────────────

@router.post("/process-due", response_model=ProcessDueResponse)
async def process_due_transactions(
    workspace_id: uuid.UUID = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Turn every due template of the workspace into a ledger transaction and
    step it once. Each record is committed on its own; if one fails, the
    records before it stay processed and the response lists them.
    """
    await require_workspace_role(db, workspace_id, user.id, "editor")

    token = await acquire_process_lock(workspace_id)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Recurring transactions are already being processed for this workspace",
        )

    try:
        result = await process_due(
            workspace_id,
            SqlTemplateStore(db),
            SqlLedgerStore(db),
            actor_id=user.id,
        )
    except RolloverAborted as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "Processing stopped on a failing recurring transaction",
                "failed_id": str(exc.failed_id),
                "processed_count": len(exc.processed),
                "processed": jsonable_encoder([asdict(o) for o in exc.processed]),
            },
        ) from exc
    finally:
        await release_process_lock(workspace_id, token)

    return {"count": result.count, "processed": [asdict(o) for o in result.processed]}


# ─── CRUD ─────────────────────────────────────────────────────────────────────

@router.get("/", response_model=list[RecurringTransactionResponse])
async def list_recurring(
    workspace_id: uuid.UUID = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    result = await db.execute(
        select(RecurringTransaction)
        .where(RecurringTransaction.workspace_id == workspace_id)
        .order_by(RecurringTransaction.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{recurring_id}", response_model=RecurringTransactionResponse)
async def get_recurring(
    recurring_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rec = await get_or_404(db, RecurringTransaction, recurring_id, "Recurring transaction")
    await require_workspace_role(db, rec.workspace_id, user.id)
    return rec


@router.post("/", response_model=RecurringTransactionResponse, status_code=201)
async def create_recurring(
    payload: RecurringTransactionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """New templates are first due on their start date."""
    await require_workspace_role(db, payload.workspace_id, user.id, "editor")
    if payload.category_id is not None:
        await get_in_workspace(db, BudgetCategory, payload.category_id, payload.workspace_id, "Category")

    data = payload.model_dump()
    for key in _ENUM_FIELDS:
        data[key] = data[key].value
    data["name"] = data["name"].strip()
    rec = RecurringTransaction(
        created_by=user.id,
        next_due_date=payload.start_date,
        last_processed_date=None,
        **data,
    )
    db.add(rec)
    await db.flush()
    await db.refresh(rec)
    return rec


@router.patch("/{recurring_id}", response_model=RecurringTransactionResponse)
async def update_recurring(
    recurring_id: uuid.UUID,
    payload: RecurringTransactionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Partial update. Month-based steps aim for the day-of-month of start_date,
    so moving start_date to another day also moves every later monthly,
    quarterly or annual occurrence to that day.

    Switching a finished template back on is refused unless the same update
    moves start_date past the occurrence that was already booked.
    """
    rec = await get_or_404(db, RecurringTransaction, recurring_id, "Recurring transaction")
    await require_workspace_role(db, rec.workspace_id, user.id, "editor")

    data = payload.model_dump(exclude_unset=True)
    was_active = rec.is_active
    if data.get("category_id") is not None:
        await get_in_workspace(db, BudgetCategory, data["category_id"], rec.workspace_id, "Category")
    for key in _ENUM_FIELDS:
        if data.get(key) is not None:
            data[key] = data[key].value

    start = data.get("start_date") or rec.start_date
    end = data["end_date"] if "end_date" in data else rec.end_date
    if end is not None and end < start:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")

    for field, value in data.items():
        if value is None and field not in _NULLABLE:
            continue
        setattr(rec, field, value)

    # A template never falls due before it starts
    if rec.next_due_date < rec.start_date:
        rec.next_due_date = rec.start_date

    if rec.is_active and not was_active:
        await _reactivate_check(db, rec)

    await db.flush()
    await db.refresh(rec)
    return rec


@router.post("/{recurring_id}/toggle", response_model=RecurringTransactionResponse)
async def toggle_recurring(
    recurring_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rec = await get_or_404(db, RecurringTransaction, recurring_id, "Recurring transaction")
    await require_workspace_role(db, rec.workspace_id, user.id, "editor")

    if not rec.is_active:
        await _reactivate_check(db, rec)
    rec.is_active = not rec.is_active
    await db.flush()
    await db.refresh(rec)
    logger.info("Recurring transaction %s active=%s", rec.id, rec.is_active)
    return rec


@router.delete("/{recurring_id}", status_code=204)
async def delete_recurring(
    recurring_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rec = await get_or_404(db, RecurringTransaction, recurring_id, "Recurring transaction")
    await require_workspace_role(db, rec.workspace_id, user.id, "editor")
    await db.delete(rec)
