"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. The sale processor's stored procedure is mocked.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB

from azura_pos.database import Base
import azura_pos.models  # noqa: F401
from azura_pos.models.api_key import ApiKey
from azura_pos.models.profile import Profile
from azura_pos.models.sale_product import SaleProduct


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
async def gestor(db) -> Profile:
    profile = Profile(email="gestor@padaria.test", full_name="Ana Gestora", role="gestor")
    db.add(profile)
    await db.commit()
    return profile


@pytest.fixture
async def croissant(db, gestor) -> SaleProduct:
    product = SaleProduct(
        user_id=gestor.id,
        name="Croissant",
        sale_price=12.0,
        description="Croissant de manteiga",
        is_active=True,
        components=[],
    )
    db.add(product)
    await db.commit()
    return product


@pytest.fixture
async def api_key(db, gestor) -> ApiKey:
    key = ApiKey(user_id=gestor.id, key_value="azp_test_key", name="Test POS", is_active=True)
    db.add(key)
    await db.commit()
    return key


@pytest.fixture
def sample_receipt_body():
    return {
        "receipts": [{
            "receipt_number": "1-1001",
            "created_at": "2026-10-17T12:30:00.000Z",
            "total_money": 24.0,
            "line_items": [
                {"item_name": "croissant", "quantity": 2, "total_money": 24.0},
            ],
        }]
    }
