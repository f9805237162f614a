import enum
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from budgetspace.schemas.recurring import Frequency
from budgetspace.schemas.transaction import Currency


class IncomeType(str, enum.Enum):
    salary = "salary"
    freelance = "freelance"
    investment = "investment"
    rental = "rental"
    business = "business"
    other = "other"


class IncomeSourceCreate(BaseModel):
    workspace_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    type: IncomeType
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency: Currency
    frequency: Frequency
    is_active: bool = True
    notes: str | None = Field(default=None, max_length=500)


class IncomeSourceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: IncomeType | None = None
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    currency: Currency | None = None
    frequency: Frequency | None = None
    is_active: bool | None = None
    notes: str | None = Field(default=None, max_length=500)


class IncomeSourceResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    type: str
    amount: Decimal
    currency: str
    frequency: str
    is_active: bool
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
