"""
Sale processing - records a POS sale and deducts recipe components from stock.

Two backends, selected by SALE_PROCESSOR:
- procedure: the database function process_pos_sale(p_user_id, p_sale_payload)
- orm: the same effect in-process, inside the caller's transaction

Either way the caller owns the transaction: commit on success, rollback on error.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from azura_pos.config import get_settings
from azura_pos.models.profile import Profile
from azura_pos.models.sale import Sale
from azura_pos.models.sale_product import SaleProduct, SaleProductComponent
from azura_pos.models.stock import StockItem, StockMovement, FinishedProductionStock

logger = logging.getLogger(__name__)

SALE_OWNER_ROLE = "gestor"


class SaleProcessingError(Exception):
    """Raised when a sale cannot be recorded."""
    pass


class SaleOwnerNotFoundError(SaleProcessingError):
    """Raised when no manager profile exists to own POS sales."""
    pass


async def find_sale_owner(db: AsyncSession) -> uuid.UUID:
    """Return an arbitrary gestor profile id; POS sales are attributed to it."""
    result = await db.execute(
        select(Profile.id).where(Profile.role == SALE_OWNER_ROLE).limit(1)
    )
    owner_id = result.scalar_one_or_none()
    if owner_id is None:
        raise SaleOwnerNotFoundError("No gestor found: empty result")
    return owner_id


def extract_sale_id(result: Any) -> Any:
    """Pull the sale identifier out of a processor result."""
    if isinstance(result, dict):
        return result.get("sale_id") or result.get("id")
    return result


async def process_pos_sale(
    db: AsyncSession,
    user_id: uuid.UUID,
    sale_payload: dict,
) -> Any:
    """Record a sale for user_id. Raises SaleProcessingError on failure."""
    settings = get_settings()
    if settings.sale_processor == "orm":
        return await _process_sale_in_session(db, user_id, sale_payload)
    return await _call_stored_procedure(db, user_id, sale_payload)


async def _call_stored_procedure(
    db: AsyncSession,
    user_id: uuid.UUID,
    sale_payload: dict,
) -> Any:
    stmt = text(
        "SELECT process_pos_sale(CAST(:p_user_id AS uuid), CAST(:p_sale_payload AS jsonb))"
    )
    try:
        result = await db.execute(
            stmt,
            {"p_user_id": str(user_id), "p_sale_payload": json.dumps(sale_payload, default=str)},
        )
        value = result.scalar_one()
    except SQLAlchemyError as e:
        raise SaleProcessingError(f"RPC error: {e}") from e

    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def _coerce_sold_item(entry: Any) -> tuple[uuid.UUID, float]:
    if not isinstance(entry, dict):
        raise SaleProcessingError(f"Invalid sold item: {entry!r}")
    try:
        product_id = uuid.UUID(str(entry.get("product_id")))
    except ValueError:
        raise SaleProcessingError(f"Invalid product_id: {entry.get('product_id')!r}")
    try:
        quantity = float(entry.get("quantity") or 1)
    except (TypeError, ValueError):
        raise SaleProcessingError(f"Invalid quantity: {entry.get('quantity')!r}")
    if quantity <= 0:
        raise SaleProcessingError(f"Quantity must be positive: {quantity}")
    return product_id, quantity


async def _load_product(db: AsyncSession, product_id: uuid.UUID) -> Optional[SaleProduct]:
    result = await db.execute(
        select(SaleProduct)
        .options(selectinload(SaleProduct.components))
        .where(SaleProduct.id == product_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _parse_sale_date(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        moment = date_parser.isoparse(value)
    except ValueError:
        raise SaleProcessingError(f"Invalid date_time: {value!r}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


async def _process_sale_in_session(
    db: AsyncSession,
    user_id: uuid.UUID,
    sale_payload: dict,
) -> dict:
    items = sale_payload.get("sold_items") or []
    if not items:
        raise SaleProcessingError("sold_items must not be empty")

    sale_date = _parse_sale_date(sale_payload.get("date_time"))
    notes = "POS sale via {} (total {})".format(
        sale_payload.get("payment_method") or "POS",
        sale_payload.get("total_amount") or 0,
    )

    sale_ids: list[str] = []
    for entry in items:
        product_id, quantity = _coerce_sold_item(entry)
        product = await _load_product(db, product_id)
        if product is None:
            raise SaleProcessingError(f"Sale product {product_id} not found")

        sale = Sale(
            id=uuid.uuid4(),
            user_id=user_id,
            sale_product_id=product.id,
            quantity_sold=quantity,
            sale_date=sale_date,
            notes=notes,
        )
        db.add(sale)
        sale_ids.append(str(sale.id))

        for component in product.components:
            await _deduct_component(db, product, component, component.quantity * quantity)

    await db.flush()
    logger.info(
        "POS sale recorded: %d item(s)", len(sale_ids),
        extra={"sale_id": sale_ids[0], "user_id": str(user_id)},
    )
    return {
        "success": True,
        "sale_id": sale_ids[0],
        "sale_ids": sale_ids,
        "items_processed": len(sale_ids),
    }


async def _deduct_component(
    db: AsyncSession,
    product: SaleProduct,
    component: SaleProductComponent,
    needed: float,
) -> None:
    """
    Deduct one recipe component from the product owner's stock. Rows are read
    with FOR UPDATE so concurrent sales queue instead of overwriting each other.
    The POS already sold the item, so a shortfall is logged and never blocks the sale.
    """
    owner_id = product.user_id

    if component.component_type == "stock_item":
        result = await db.execute(
            select(StockItem)
            .where(StockItem.id == component.component_id, StockItem.user_id == owner_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if item is None:
            logger.warning("Stock item %s missing for %s", component.component_id, product.name)
            return
        if item.current_quantity < needed:
            logger.warning(
                "Stock shortfall for %s: need %.3f, have %.3f",
                item.name, needed, item.current_quantity,
            )
        item.current_quantity = item.current_quantity - needed
        db.add(StockMovement(
            user_id=owner_id,
            stock_item_id=item.id,
            type="exit",
            source="pos",
            quantity=needed,
            notes=f"Venda POS: {product.name}",
        ))

    elif component.component_type == "finished_production":
        result = await db.execute(
            select(FinishedProductionStock)
            .where(
                FinishedProductionStock.technical_sheet_id == component.component_id,
                FinishedProductionStock.user_id == owner_id,
            )
            .order_by(FinishedProductionStock.created_at)
            .limit(1)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        stock = result.scalar_one_or_none()
        if stock is None:
            logger.warning(
                "No finished production stock for sheet %s (%s)",
                component.component_id, product.name,
            )
            return
        remaining = stock.quantity - needed
        if remaining <= 0:
            if remaining < 0:
                logger.warning("Finished production shortfall for %s: %.3f", product.name, -remaining)
            await db.delete(stock)
        else:
            stock.quantity = remaining

    elif component.component_type == "sale_product":
        result = await db.execute(
            select(SaleProduct)
            .where(SaleProduct.id == component.component_id, SaleProduct.user_id == owner_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        other = result.scalar_one_or_none()
        if other is None:
            logger.warning("Component product %s missing for %s", component.component_id, product.name)
            return
        if other.ready_quantity < needed:
            logger.warning(
                "Ready quantity shortfall for %s: need %.3f, have %.3f",
                other.name, needed, other.ready_quantity,
            )
        other.ready_quantity = max(0, other.ready_quantity - needed)

    else:
        logger.warning("Unknown component type %r on %s", component.component_type, product.name)
