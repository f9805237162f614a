import enum
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from budgetspace.schemas.transaction import Currency


class QuantityType(str, enum.Enum):
    fixed = "fixed"
    unit = "unit"
    weight = "weight"


# ─── Categories ───────────────────────────────────────────────────────────────

class CategoryCreate(BaseModel):
    workspace_id: uuid.UUID
    name: str = Field(min_length=1, max_length=50)
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=20)


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=20)


class CategoryResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    icon: str | None
    color: str | None
    is_default: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# ─── Monthly budgets ──────────────────────────────────────────────────────────

class BudgetSet(BaseModel):
    workspace_id: uuid.UUID
    category_id: uuid.UUID
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)
    planned_amount: Decimal = Field(ge=0, decimal_places=2)
    currency: Currency


class BudgetResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    category_id: uuid.UUID
    year: int
    month: int
    planned_amount: Decimal
    currency: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BudgetCopyResponse(BaseModel):
    created: list[BudgetResponse]
    count: int


class CategoryOverview(BaseModel):
    category: CategoryResponse
    planned: Decimal
    spent: Decimal
    remaining: Decimal     # negative if over budget
    percentage: int        # round(spent / planned * 100), 0 when nothing planned
    is_over_budget: bool


class BudgetSummary(BaseModel):
    total_planned: Decimal
    total_spent: Decimal
    total_remaining: Decimal
    overall_percentage: int


class BudgetOverviewResponse(BaseModel):
    overview: list[CategoryOverview]
    summary: BudgetSummary


# ─── Budget items ─────────────────────────────────────────────────────────────

class BudgetItemCreate(BaseModel):
    workspace_id: uuid.UUID
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)
    category_id: uuid.UUID | None = None
    recurring_expense_id: uuid.UUID | None = None
    name: str = Field(min_length=1, max_length=255)
    quantity_type: QuantityType = QuantityType.fixed
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Decimal = Field(ge=0)
    planned_amount: Decimal = Field(ge=0)
    is_purchased: bool = False
    currency: Currency


class BudgetItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    quantity_type: QuantityType | None = None
    quantity: Decimal | None = Field(default=None, ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    planned_amount: Decimal | None = Field(default=None, ge=0)
    is_purchased: bool | None = None
    category_id: uuid.UUID | None = None


class BudgetItemResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    year: int
    month: int
    category_id: uuid.UUID | None
    recurring_expense_id: uuid.UUID | None
    name: str
    quantity_type: str
    quantity: Decimal
    unit_price: Decimal
    planned_amount: Decimal
    is_purchased: bool
    currency: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BudgetItemWithActual(BudgetItemResponse):
    actual_amount: Decimal


class PopulateResponse(BaseModel):
    created: int
    items: list[BudgetItemResponse]
