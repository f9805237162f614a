import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from budgetspace.schemas.transaction import Currency, TransactionType


class Frequency(str, enum.Enum):
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    quarterly = "quarterly"
    annual = "annual"
    one_time = "one_time"


class RecurringTransactionCreate(BaseModel):
    workspace_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    category_id: uuid.UUID | None = None
    type: TransactionType
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency: Currency
    frequency: Frequency
    start_date: date
    end_date: date | None = None
    is_active: bool = True
    notes: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def validate_window(self) -> "RecurringTransactionCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RecurringTransactionUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    category_id: uuid.UUID | None = None
    type: TransactionType | None = None
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    currency: Currency | None = None
    frequency: Frequency | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None
    notes: str | None = Field(default=None, max_length=500)


class RecurringTransactionResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    category_id: uuid.UUID | None
    type: str
    amount: Decimal
    currency: str
    frequency: str
    start_date: date
    end_date: date | None
    next_due_date: date
    last_processed_date: datetime | None
    is_active: bool
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class RolloverOutcomeResponse(BaseModel):
    recurring_id: uuid.UUID
    transaction_id: uuid.UUID
    transaction_date: date
    next_due_date: date | None  # None when the template was deactivated
    deactivated: bool


class ProcessDueResponse(BaseModel):
    count: int
    processed: list[RolloverOutcomeResponse]
