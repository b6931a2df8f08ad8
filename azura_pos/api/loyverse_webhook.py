"""
Loyverse webhook - POS receipts become sales with recipe-based stock deduction.

Pipeline (per request, no retries):
1. Audit trail (webhook_logs, status "received") before anything else
2. Optional signature check (X-Loyverse-Signature, HMAC-SHA1)
3. Receipt resolution - events without line_items are ignored
4. Name matching against sale products
5. Sale processing attributed to the gestor profile
6. Audit the outcome

Soft failures answer 200 so Loyverse does not retry forever; only unexpected
exceptions answer 500.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from azura_pos.config import get_settings
from azura_pos.database import get_db
from azura_pos.schemas.webhook_payloads import LoyverseReceipt
from azura_pos.services.loyverse import (
    INVALID_JSON_ERROR,
    build_sale_payload,
    is_sale_receipt,
    resolve_receipt,
)
from azura_pos.services.product_matching import load_product_name_map, match_line_items
from azura_pos.services.sale_processing import (
    extract_sale_id,
    find_sale_owner,
    process_pos_sale,
)
from azura_pos.services.webhook_log import record_webhook_failure, record_webhook_log
from azura_pos.utils.webhook_signatures import verify_loyverse_request

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/functions/v1", tags=["webhooks"])

IGNORED_MESSAGE = "Ignored event"
NO_MATCH_MESSAGE = "No matching products found"


def _parse_body(raw_body: bytes):
    """Parsed JSON, or the raw text flagged as invalid."""
    try:
        return json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"raw": raw_body.decode("utf-8", errors="replace"), "error": INVALID_JSON_ERROR}


async def _process_receipt(db: AsyncSession, payload) -> JSONResponse:
    receipt = resolve_receipt(payload)
    if not is_sale_receipt(receipt):
        logger.info("Ignoring Loyverse event without line_items", extra={"source": "loyverse"})
        return JSONResponse(content={"message": IGNORED_MESSAGE})

    parsed = LoyverseReceipt.model_validate(receipt)
    name_map = await load_product_name_map(db)
    match = match_line_items(parsed.line_items, name_map)

    if not match.sold_items:
        logger.warning(
            "No matching products for receipt (tried: %s)",
            ", ".join(match.unmatched) or "none",
            extra={"receipt_number": parsed.receipt_number},
        )
        await record_webhook_log(
            db, "error", {"body": payload, "unmatched": match.unmatched},
            error_message=NO_MATCH_MESSAGE,
        )
        return JSONResponse(content={"message": NO_MATCH_MESSAGE})

    user_id = await find_sale_owner(db)
    sale_payload = build_sale_payload(
        parsed, match.sold_items, payment_method=get_settings().pos_payment_method,
    )

    result = await process_pos_sale(db, user_id, sale_payload.model_dump())
    sale_id = extract_sale_id(result)

    await record_webhook_log(
        db, "success", jsonable_encoder({"sale_id": sale_id}),
        error_message=(
            f"Unmatched items: {', '.join(match.unmatched)}" if match.unmatched else None
        ),
    )
    logger.info(
        "Loyverse sale processed: %d matched, %d unmatched",
        len(match.sold_items), len(match.unmatched),
        extra={"receipt_number": parsed.receipt_number, "sale_id": sale_id},
    )
    return JSONResponse(content=jsonable_encoder(result))


@router.post("/loyverse-webhook")
async def loyverse_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Loyverse receipt webhook - one sale per delivery."""
    try:
        raw_body = await request.body()
        payload = _parse_body(raw_body)

        await record_webhook_log(
            db, "received",
            {"method": request.method, "headers": dict(request.headers), "body": payload},
        )

        if not verify_loyverse_request(request.headers, raw_body):
            client_ip = request.client.host if request.client else "unknown"
            logger.warning("Invalid Loyverse webhook signature: ip=%s", client_ip)
            return JSONResponse(status_code=401, content={"error": "Invalid webhook signature"})

        return await _process_receipt(db, payload)
    except Exception as e:
        logger.error("Loyverse webhook processing error: %s", str(e), exc_info=True)
        await db.rollback()
        await record_webhook_failure(db, e)
        return JSONResponse(status_code=500, content={"error": str(e)})
