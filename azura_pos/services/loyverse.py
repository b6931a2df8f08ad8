"""
Loyverse receipt handling - find the receipt inside a webhook body and
turn a matched receipt into a normalized sale payload.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

from azura_pos.schemas.sale_payload import SalePayload, SoldItem
from azura_pos.schemas.webhook_payloads import LoyverseReceipt

INVALID_JSON_ERROR = "Invalid JSON"


def resolve_receipt(payload: Any) -> Optional[Any]:
    """
    Loyverse sends {"receipts": [...]} or a single receipt object.
    Only the first receipt of a batch is processed; an empty batch resolves to None.
    """
    if isinstance(payload, dict) and payload.get("receipts") is not None:
        receipts = payload["receipts"]
        if isinstance(receipts, list) and receipts:
            return receipts[0]
        return None
    return payload


def is_sale_receipt(receipt: Any) -> bool:
    """Non-sale events (and malformed bodies) carry no line_items list."""
    return isinstance(receipt, dict) and isinstance(receipt.get("line_items"), list)


def format_sale_datetime(value: Optional[str]) -> str:
    """Normalize a receipt timestamp to UTC ISO-8601 with milliseconds."""
    if value:
        moment = date_parser.isoparse(value)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_sale_payload(
    receipt: LoyverseReceipt,
    sold_items: list[SoldItem],
    payment_method: str,
) -> SalePayload:
    return SalePayload(
        date_time=format_sale_datetime(receipt.created_at),
        payment_method=payment_method,
        total_amount=receipt.total_money or 0,
        sold_items=sold_items,
    )
