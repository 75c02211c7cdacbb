from decimal import Decimal

from pydantic import BaseModel, Field


class CreditPayment(BaseModel):
    amount_paid: Decimal = Field(gt=0)
