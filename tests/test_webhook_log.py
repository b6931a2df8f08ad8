"""
Tests for azura_pos/services/webhook_log.py - the append-only audit trail.
"""
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from azura_pos.models.webhook_log import WebhookLog
from azura_pos.services.webhook_log import (
    list_recent_webhook_logs,
    record_webhook_failure,
    record_webhook_log,
)


class TestRecordWebhookLog:
    async def test_inserts_and_commits(self, db):
        entry = await record_webhook_log(db, "received", {"body": {"a": 1}})

        assert entry.id is not None
        assert entry.status == "received"
        rows = (await db.execute(select(WebhookLog))).scalars().all()
        assert len(rows) == 1
        assert rows[0].payload == {"body": {"a": 1}}

    async def test_row_survives_later_rollback(self, db):
        await record_webhook_log(db, "received", {"body": {}})
        await db.rollback()

        rows = (await db.execute(select(WebhookLog))).scalars().all()
        assert len(rows) == 1

    async def test_stores_error_message(self, db):
        entry = await record_webhook_log(db, "error", {"x": 1}, error_message="No matching products found")
        assert entry.error_message == "No matching products found"

    async def test_stamps_correlation_id(self, db):
        with patch("azura_pos.services.webhook_log.get_correlation_id", return_value="cid-123"):
            entry = await record_webhook_log(db, "manual_test", {"test": "manual_insert"})
        assert entry.correlation_id == "cid-123"

    async def test_unknown_status_rejected(self, db):
        with pytest.raises(ValueError, match="Unknown webhook log status"):
            await record_webhook_log(db, "processing", {})


class TestRecordWebhookFailure:
    async def test_records_message_and_stack(self, db):
        try:
            raise RuntimeError("stock locked")
        except RuntimeError as e:
            entry = await record_webhook_failure(db, e)

        assert entry.status == "error"
        assert entry.error_message == "stock locked"
        assert "RuntimeError: stock locked" in entry.payload["error_stack"]
        assert "Traceback" in entry.payload["error_stack"]

    async def test_audit_write_failure_is_swallowed(self, db):
        with patch(
            "azura_pos.services.webhook_log.record_webhook_log",
            new_callable=AsyncMock,
            side_effect=RuntimeError("db down"),
        ), patch("azura_pos.services.webhook_log.logger") as mock_logger:
            result = await record_webhook_failure(db, ValueError("boom"))

        assert result is None
        mock_logger.error.assert_called_once()


class TestListRecentWebhookLogs:
    async def test_newest_first_with_limit(self, db):
        for status in ("received", "error", "received", "success"):
            await record_webhook_log(db, status, {"status": status})

        logs = await list_recent_webhook_logs(db, limit=3)

        assert len(logs) == 3
        created = [log.created_at for log in logs]
        assert created == sorted(created, reverse=True)

    async def test_empty(self, db):
        assert await list_recent_webhook_logs(db) == []
