"""
Static API key authentication for third-party POS integrations.
"""
import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from azura_pos.models.api_key import ApiKey

logger = logging.getLogger(__name__)


async def authenticate_api_key(db: AsyncSession, key_value: str) -> Optional[ApiKey]:
    """Return the active key row for key_value, or None. Stamps last_used_at."""
    if not key_value:
        return None
    result = await db.execute(
        select(ApiKey).where(
            and_(ApiKey.key_value == key_value, ApiKey.is_active == True)
        )
    )
    api_key = result.scalar_one_or_none()
    if api_key is None:
        return None
    api_key.last_used_at = datetime.now(timezone.utc)
    return api_key


async def issue_api_key(db: AsyncSession, user_id: uuid.UUID, name: str = "POS") -> ApiKey:
    """Create a new random key for user_id."""
    api_key = ApiKey(
        user_id=user_id,
        key_value=f"azp_{secrets.token_urlsafe(32)}",
        name=name,
        is_active=True,
    )
    db.add(api_key)
    await db.flush()
    logger.info("Issued API key %s", name, extra={"user_id": str(user_id)})
    return api_key
