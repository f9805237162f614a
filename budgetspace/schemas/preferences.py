import enum
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from budgetspace.schemas.transaction import Currency


class Language(str, enum.Enum):
    en = "en"
    uz = "uz"


class Theme(str, enum.Enum):
    light = "light"
    dark = "dark"
    system = "system"


class PreferencesUpdate(BaseModel):
    default_workspace_id: uuid.UUID | None = None
    default_language: Language | None = None
    default_currency: Currency | None = None
    theme: Theme | None = None
    notifications_enabled: bool | None = None
    email_notifications: bool | None = None


class DefaultWorkspaceSet(BaseModel):
    workspace_id: uuid.UUID | None


class PreferencesResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    default_workspace_id: uuid.UUID | None
    default_language: str | None
    default_currency: str | None
    theme: str | None
    notifications_enabled: bool
    email_notifications: bool

    model_config = {"from_attributes": True}


class ExchangeRateSet(BaseModel):
    from_currency: Currency
    to_currency: Currency
    rate: Decimal = Field(gt=0)


class ExchangeRateResponse(BaseModel):
    from_currency: str
    to_currency: str
    rate: Decimal
    fetched_at: datetime

    model_config = {"from_attributes": True}
