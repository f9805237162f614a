import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class DebtType(str, enum.Enum):
    lent = "lent"
    borrowed = "borrowed"


class DebtCreate(BaseModel):
    workspace_id: uuid.UUID
    type: DebtType
    person_name: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(ge=Decimal("0.01"), decimal_places=2)
    currency: str = Field(min_length=3, max_length=3)
    description: str | None = None
    due_date: date | None = None
    is_paid: bool = False
    notes: str | None = None


class DebtUpdate(BaseModel):
    type: DebtType | None = None
    person_name: str | None = Field(default=None, min_length=1, max_length=255)
    amount: Decimal | None = Field(default=None, ge=Decimal("0.01"), decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    description: str | None = None
    due_date: date | None = None
    is_paid: bool | None = None
    notes: str | None = None


class DebtResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    type: str
    person_name: str
    amount: Decimal
    currency: str
    description: str | None
    due_date: date | None
    is_paid: bool
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
