"""
Webhook audit trail writer.
Each row is committed immediately so it survives a later rollback of the sale transaction.
"""
import logging
import traceback
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from azura_pos.models.webhook_log import WebhookLog, WEBHOOK_LOG_STATUSES
from azura_pos.utils.logging import get_correlation_id

logger = logging.getLogger(__name__)


async def record_webhook_log(
    db: AsyncSession,
    status: str,
    payload: Any,
    error_message: Optional[str] = None,
) -> WebhookLog:
    """Append one audit row and commit it."""
    if status not in WEBHOOK_LOG_STATUSES:
        raise ValueError(f"Unknown webhook log status: {status}")

    entry = WebhookLog(
        payload=payload,
        status=status,
        error_message=error_message,
        correlation_id=get_correlation_id(),
    )
    db.add(entry)
    await db.commit()
    return entry


async def record_webhook_failure(db: AsyncSession, error: BaseException) -> Optional[WebhookLog]:
    """
    Record an unhandled processing error with its stack trace.
    Never raises: a failing audit write is logged and swallowed.
    """
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    try:
        return await record_webhook_log(
            db,
            "error",
            {"error_stack": stack},
            error_message=str(error),
        )
    except Exception as log_err:
        logger.error("Failed to record webhook error log: %s", str(log_err))
        await db.rollback()
        return None


async def list_recent_webhook_logs(db: AsyncSession, limit: int = 5) -> list[WebhookLog]:
    """Most recent audit rows, newest first."""
    result = await db.execute(
        select(WebhookLog).order_by(WebhookLog.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())
