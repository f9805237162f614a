import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class Currency(str, enum.Enum):
    USD = "USD"
    UZS = "UZS"


class TransactionType(str, enum.Enum):
    income = "income"
    expense = "expense"


class TransactionCreate(BaseModel):
    workspace_id: uuid.UUID
    type: TransactionType
    category_id: uuid.UUID | None = None
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency: Currency
    converted_amount: Decimal | None = None
    exchange_rate: Decimal | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, max_length=500)
    transaction_date: date
    recurring_expense_id: uuid.UUID | None = None
    debt_id: uuid.UUID | None = None
    budget_item_id: uuid.UUID | None = None
    tags: list[str] | None = None


class TransactionUpdate(BaseModel):
    type: TransactionType | None = None
    category_id: uuid.UUID | None = None
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    currency: Currency | None = None
    converted_amount: Decimal | None = None
    exchange_rate: Decimal | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, max_length=500)
    transaction_date: date | None = None
    budget_item_id: uuid.UUID | None = None
    tags: list[str] | None = None


class TransactionResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    created_by: uuid.UUID
    type: str
    category_id: uuid.UUID | None
    amount: Decimal
    currency: str
    converted_amount: Decimal | None
    exchange_rate: Decimal | None
    description: str | None
    transaction_date: date
    recurring_expense_id: uuid.UUID | None
    debt_id: uuid.UUID | None
    budget_item_id: uuid.UUID | None
    tags: list[str] | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionPage(BaseModel):
    transactions: list[TransactionResponse]
    total: int


class TransactionSummary(BaseModel):
    total_income: Decimal
    total_expenses: Decimal
    net_balance: Decimal
    transaction_count: int
    income_by_category: dict[str, Decimal]
    expenses_by_category: dict[str, Decimal]

