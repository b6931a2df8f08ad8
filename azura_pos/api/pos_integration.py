"""
Generic POS integration - third-party POS systems authenticated by x-api-key.

- GET:  list active sale products
- POST: submit pre-matched sold_items straight to the sale processor

No name matching here: callers send internal product ids. Authentication
failures are answered with 401 and leave no audit row.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from azura_pos.config import get_settings
from azura_pos.database import get_db
from azura_pos.models.sale_product import SaleProduct
from azura_pos.schemas.api_responses import PosProduct
from azura_pos.services.api_keys import authenticate_api_key
from azura_pos.services.sale_processing import SaleProcessingError, process_pos_sale

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/functions/v1", tags=["pos"])

API_KEY_HEADER = "x-api-key"
INVALID_BODY_ERROR = "Invalid body: 'sold_items' array is required"


def _error(status_code: int, message: str, details: str | None = None) -> JSONResponse:
    content = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def _list_products(db: AsyncSession) -> JSONResponse:
    settings = get_settings()
    result = await db.execute(
        select(SaleProduct)
        .where(SaleProduct.is_active == True)
        .order_by(SaleProduct.name)
    )
    products = [
        PosProduct(
            id=str(p.id),
            name=p.name,
            price=p.sale_price or 0,
            category=settings.pos_default_category,
            description=p.description,
            image_url=p.image_url,
        ).model_dump()
        for p in result.scalars().all()
    ]
    return JSONResponse(content=products)


async def _submit_sale(request: Request, db: AsyncSession, user_id) -> JSONResponse:
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, INVALID_BODY_ERROR)

    if not isinstance(body, dict) or not isinstance(body.get("sold_items"), list):
        return _error(400, INVALID_BODY_ERROR)

    try:
        result = await process_pos_sale(db, user_id, body)
    except SaleProcessingError as e:
        logger.error("Error processing POS sale: %s", str(e), extra={"user_id": str(user_id)})
        await db.rollback()
        return _error(500, "Error processing sale", details=str(e))

    logger.info(
        "POS integration sale processed: %d item(s)", len(body["sold_items"]),
        extra={"user_id": str(user_id), "source": "pos_integration"},
    )
    return JSONResponse(content=jsonable_encoder(result))


@router.api_route(
    "/pos-integration",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
)
async def pos_integration(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Product listing and sale submission for API-key integrations."""
    try:
        key_value = request.headers.get(API_KEY_HEADER)
        if not key_value:
            return _error(401, "Missing x-api-key header")

        api_key = await authenticate_api_key(db, key_value)
        if api_key is None:
            client_ip = request.client.host if request.client else "unknown"
            logger.warning("Rejected POS integration call with invalid API key: ip=%s", client_ip)
            return _error(401, "Invalid or inactive API Key")

        if request.method == "GET":
            return await _list_products(db)
        if request.method == "POST":
            return await _submit_sale(request, db, api_key.user_id)
        return _error(405, "Method not allowed")
    except Exception as e:
        logger.error("POS integration error: %s", str(e), exc_info=True)
        await db.rollback()
        return _error(500, str(e))
