"""
Webhook payload schemas - raw receipt input from Loyverse.
Loyverse sends many event types; only receipts carrying line_items are sales.
"""
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class LoyverseLineItem(BaseModel):
    """One line of a Loyverse receipt."""
    model_config = ConfigDict(extra="allow")

    item_name: Optional[str] = None
    quantity: Optional[Union[int, float]] = None
    total_money: Optional[Union[int, float]] = None


class LoyverseReceipt(BaseModel):
    """Loyverse receipt (a single sale)."""
    model_config = ConfigDict(extra="allow")

    receipt_number: Optional[str] = None
    created_at: Optional[str] = None
    total_money: Optional[Union[int, float]] = None
    line_items: list[LoyverseLineItem] = Field(default_factory=list)
