from decimal import Decimal

from pydantic import BaseModel, Field

from gcdl.app.db.models.core_types import DealerType


class ProcurementCreate(BaseModel):
    produce_id: int
    branch_id: int
    dealer_name: str = Field(min_length=1, max_length=200)
    dealer_contact: str | None = Field(default=None, max_length=64)
    dealer_type: DealerType
    tonnage: Decimal = Field(gt=0)
    cost_per_ton: Decimal = Field(ge=0)
    total_cost: Decimal = Field(ge=0)
    selling_price_per_ton: Decimal = Field(ge=0)


class ProcurementUpdate(BaseModel):
    dealer_name: str | None = Field(default=None, min_length=1, max_length=200)
    dealer_contact: str | None = Field(default=None, max_length=64)
    dealer_type: DealerType | None = None
    tonnage: Decimal | None = Field(default=None, gt=0)
    cost_per_ton: Decimal | None = Field(default=None, ge=0)
    total_cost: Decimal | None = Field(default=None, ge=0)
    selling_price_per_ton: Decimal | None = Field(default=None, ge=0)
