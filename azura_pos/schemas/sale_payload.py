"""
Normalized sale payload handed to the sale processor.
Built per request from a matched receipt; never persisted directly.
"""
from typing import Union
from pydantic import BaseModel, Field


class SoldItem(BaseModel):
    product_id: str
    quantity: Union[int, float]


class SalePayload(BaseModel):
    date_time: str  # ISO-8601, UTC
    payment_method: str
    total_amount: Union[int, float] = 0
    sold_items: list[SoldItem] = Field(default_factory=list)
