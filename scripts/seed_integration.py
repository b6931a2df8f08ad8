"""
Prepare a database for POS integration testing.

- Ensures a gestor profile exists (promotes the first profile if none does)
- Ensures the test product exists and is active
- Issues an API key for the gestor

Usage:
    python scripts/seed_integration.py
    python scripts/seed_integration.py --product "Croissant" --price 12.00
"""
import argparse
import asyncio
import logging

from sqlalchemy import select

from azura_pos.database import async_session_factory, dispose_engine
from azura_pos.models.profile import Profile
from azura_pos.models.sale_product import SaleProduct
from azura_pos.services.api_keys import issue_api_key

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def ensure_gestor(db) -> Profile:
    result = await db.execute(select(Profile).where(Profile.role == "gestor").limit(1))
    gestor = result.scalar_one_or_none()
    if gestor:
        logger.info("Profile %s is already gestor", gestor.email or gestor.id)
        return gestor

    result = await db.execute(select(Profile).order_by(Profile.created_at).limit(1))
    first = result.scalar_one_or_none()
    if first is None:
        first = Profile(email="gestor@example.com", full_name="Gestor", role="gestor")
        db.add(first)
        await db.flush()
        logger.info("No profiles found - created %s", first.email)
        return first

    first.role = "gestor"
    logger.info("Promoted %s to gestor", first.email or first.id)
    return first


async def ensure_product(db, owner: Profile, name: str, price: float) -> SaleProduct:
    result = await db.execute(select(SaleProduct).where(SaleProduct.name == name).limit(1))
    product = result.scalar_one_or_none()
    if product:
        product.is_active = True
        logger.info("Product %r already exists (%s)", name, product.id)
        return product

    product = SaleProduct(
        user_id=owner.id,
        name=name,
        sale_price=price,
        is_active=True,
        description="Produto para teste de integração",
    )
    db.add(product)
    await db.flush()
    logger.info("Created product %r (%s)", name, product.id)
    return product


async def main():
    parser = argparse.ArgumentParser(description="Seed POS integration prerequisites")
    parser.add_argument("--product", default="Produto Fantasma")
    parser.add_argument("--price", type=float, default=10.00)
    parser.add_argument("--key-name", default="POS test")
    args = parser.parse_args()

    try:
        async with async_session_factory() as db:
            gestor = await ensure_gestor(db)
            await ensure_product(db, gestor, args.product, args.price)
            api_key = await issue_api_key(db, gestor.id, name=args.key_name)
            await db.commit()
            print(f"\nAPI key for {gestor.email or gestor.id}: {api_key.key_value}")
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
