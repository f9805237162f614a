import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db
from budgetspace.core.deps import get_current_user, get_or_404, require_workspace_role
from budgetspace.models.budget import BudgetCategory, MonthlyBudget
from budgetspace.models.user import User
from budgetspace.schemas.budget import CategoryCreate, CategoryResponse, CategoryUpdate

router = APIRouter(prefix="/categories", tags=["categories"])

_DEFAULT_COLOR = "#9B87F5"


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(
    workspace_id: uuid.UUID = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, workspace_id, user.id)
    result = await db.execute(
        select(BudgetCategory)
        .where(BudgetCategory.workspace_id == workspace_id)
        .order_by(BudgetCategory.name)
    )
    return result.scalars().all()


@router.post("/", response_model=CategoryResponse, status_code=201)
async def create_category(
    payload: CategoryCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_role(db, payload.workspace_id, user.id, "editor")
    category = BudgetCategory(
        workspace_id=payload.workspace_id,
        created_by=user.id,
        name=payload.name.strip(),
        icon=payload.icon or None,
        color=payload.color or _DEFAULT_COLOR,
        is_default=False,
    )
    db.add(category)
    await db.flush()
    await db.refresh(category)
    return category


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    category = await get_or_404(db, BudgetCategory, category_id, "Category")
    await require_workspace_role(db, category.workspace_id, user.id, "editor")

    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        data["name"] = data["name"].strip()
    else:
        data.pop("name", None)
    for field, value in data.items():
        setattr(category, field, value)

    await db.flush()
    await db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a category and the monthly budgets planned against it."""
    category = await get_or_404(db, BudgetCategory, category_id, "Category")
    await require_workspace_role(db, category.workspace_id, user.id, "editor")

    await db.execute(delete(MonthlyBudget).where(MonthlyBudget.category_id == category_id))
    await db.delete(category)
