import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import get_current_user, get_or_404, require_workspace_role
from budgetspace.models.debt import Debt
from budgetspace.models.transaction import Transaction
from budgetspace.models.user import User
from budgetspace.schemas.debt import DebtCreate, DebtResponse, DebtUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debts", tags=["debts"])


def _ledger_entry(debt: Debt, user_id: uuid.UUID, repayment: bool) -> Transaction:
    """
    Money leaving the workspace is an expense, money coming in is income.
    Lending pays out and is repaid in; borrowing is the reverse.
    """
    lent = debt.type == "lent"
    if repayment:
        kind = "income" if lent else "expense"
        description = f"Repayment from {debt.person_name}" if lent else f"Repayment to {debt.person_name}"
        tags = ["debt", "repayment"]
    else:
        kind = "expense" if lent else "income"
        description = f"Lent to {debt.person_name}" if lent else f"Borrowed from {debt.person_name}"
        tags = ["debt"]

    return Transaction(
        workspace_id=debt.workspace_id,
        created_by=user_id,
        type=kind,
        amount=debt.amount,
        currency=debt.currency,
        description=description,
        transaction_date=date.today(),
        debt_id=debt.id,
        tags=tags,
    )


@router.get("/", response_model=list[DebtResponse])
async def list_debts(
    workspace_id: uuid.UUID = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    result = await db.execute(
        select(Debt)
        .where(Debt.workspace_id == workspace_id)
        .order_by(Debt.created_at.desc())
    )
    return result.scalars().all()


@router.post("/", response_model=DebtResponse, status_code=201)
async def create_debt(
    payload: DebtCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a debt and the ledger movement it caused."""
    await require_workspace_role(db, payload.workspace_id, user.id, "editor")

    debt = Debt(
        workspace_id=payload.workspace_id,
        created_by=user.id,
        type=payload.type.value,
        person_name=payload.person_name.strip(),
        amount=payload.amount,
        currency=payload.currency.upper(),
        description=payload.description,
        due_date=payload.due_date,
        is_paid=payload.is_paid,
        notes=payload.notes,
    )
    db.add(debt)
    await db.flush()

    db.add(_ledger_entry(debt, user.id, repayment=False))
    await db.flush()
    await db.refresh(debt)
    return debt


@router.patch("/{debt_id}", response_model=DebtResponse)
async def update_debt(
    debt_id: uuid.UUID,
    payload: DebtUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Marking a debt paid books the repayment in the ledger."""
    debt = await get_or_404(db, Debt, debt_id, "Debt")
    await require_workspace_role(db, debt.workspace_id, user.id, "editor")
    was_paid = debt.is_paid

    data = payload.model_dump(exclude_unset=True)
    if data.get("type") is not None:
        data["type"] = data["type"].value
    if data.get("currency"):
        data["currency"] = data["currency"].upper()
    for field, value in data.items():
        if value is None and field not in ("description", "due_date", "notes"):
            continue
        setattr(debt, field, value)

    if debt.is_paid and not was_paid:
        db.add(_ledger_entry(debt, user.id, repayment=True))
        logger.info("Debt %s settled; repayment recorded", debt.id)

    await db.flush()
    await db.refresh(debt)
    return debt


@router.delete("/{debt_id}", status_code=204)
async def delete_debt(
    debt_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    debt = await get_or_404(db, Debt, debt_id, "Debt")
    await require_workspace_role(db, debt.workspace_id, user.id, "editor")
    await db.delete(debt)
