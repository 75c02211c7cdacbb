from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from gcdl.app.db.models.core_types import PaymentType


class SaleCreate(BaseModel):
    produce_id: int
    branch_id: int
    buyer_name: str = Field(min_length=1, max_length=200)
    buyer_contact: str | None = Field(default=None, max_length=64)
    tonnage: Decimal = Field(gt=0)
    amount_paid: Decimal = Field(ge=0)
    payment_type: PaymentType

    # credit sales only
    buyer_national_id: str | None = Field(default=None, max_length=64)
    buyer_location: str | None = Field(default=None, max_length=255)
    amount_due: Decimal | None = Field(default=None, gt=0)
    due_date: date | None = None


class SaleUpdate(BaseModel):
    buyer_name: str | None = Field(default=None, min_length=1, max_length=200)
    buyer_contact: str | None = Field(default=None, max_length=64)
    tonnage: Decimal | None = Field(default=None, gt=0)
    amount_paid: Decimal | None = Field(default=None, ge=0)
