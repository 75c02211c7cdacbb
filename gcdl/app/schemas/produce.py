from decimal import Decimal

from pydantic import BaseModel, Field


class ProduceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: str = Field(min_length=1, max_length=100)
    branch_id: int
    current_stock: Decimal = Field(default=Decimal("0"), ge=0)


class ProduceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    type: str | None = Field(default=None, min_length=1, max_length=100)
    current_stock: Decimal | None = Field(default=None, ge=0)
