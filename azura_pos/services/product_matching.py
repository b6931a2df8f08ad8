"""
Receipt line item -> sale product reconciliation.

Matching is by exact lowercase name against every sale product, active or not.
There is no fuzzy or partial matching: an item either matches a name or is skipped.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from azura_pos.models.sale_product import SaleProduct
from azura_pos.schemas.sale_payload import SoldItem
from azura_pos.schemas.webhook_payloads import LoyverseLineItem

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    sold_items: list[SoldItem] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)


def normalize_product_name(name: str | None) -> str:
    return (name or "").strip().lower()


def build_product_name_map(products: Iterable[tuple]) -> dict[str, str]:
    """
    Build a lowercase name -> product id map from (id, name) pairs.
    With duplicate names the last product wins.
    """
    name_map: dict[str, str] = {}
    for product_id, name in products:
        key = normalize_product_name(name)
        if key:
            name_map[key] = str(product_id)
    return name_map


async def load_product_name_map(db: AsyncSession) -> dict[str, str]:
    """
    Name map over every sale product. Rows come inactive first, then oldest
    first, so with duplicate names the most recently updated active product wins.
    """
    result = await db.execute(
        select(SaleProduct.id, SaleProduct.name).order_by(
            SaleProduct.is_active,
            SaleProduct.updated_at,
            SaleProduct.created_at,
            SaleProduct.id,
        )
    )
    return build_product_name_map(result.all())


def match_line_items(
    line_items: Iterable[LoyverseLineItem],
    name_map: dict[str, str],
) -> MatchResult:
    """Match receipt lines to product ids, keeping each line's quantity."""
    match = MatchResult()
    for item in line_items:
        product_id = name_map.get(normalize_product_name(item.item_name))
        if product_id is None:
            logger.warning("No sale product matches POS item %r - skipping", item.item_name)
            match.unmatched.append(item.item_name or "unknown")
            continue
        quantity = item.quantity if item.quantity else 1
        match.sold_items.append(SoldItem(product_id=product_id, quantity=quantity))
    return match
