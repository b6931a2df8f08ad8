"""
Tests for azura_pos/api/loyverse_webhook.py - the Loyverse receipt webhook.

Covers:
- Audit trail (received row on every call, error/success rows on outcomes)
- Ignored events (no line_items, empty receipts batch, invalid JSON)
- Case-insensitive name matching and dropping of unmatched items
- Sale payload handed to the sale processor
- Fatal paths (no gestor, processor failure) -> 500
- Optional signature enforcement
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import select

from azura_pos.api.loyverse_webhook import (
    IGNORED_MESSAGE,
    NO_MATCH_MESSAGE,
    _parse_body,
    loyverse_webhook,
)
from azura_pos.models.profile import Profile
from azura_pos.models.sale_product import SaleProduct
from azura_pos.models.webhook_log import WebhookLog
from azura_pos.services.sale_processing import SaleProcessingError

SALE_RESULT = {"success": True, "sale_id": "0b4c6b0e-5a7e-4c51-9c1b-2f7f0f4d8a11"}


def _make_request(body, *, headers: dict | None = None):
    """Build a mock FastAPI Request carrying a JSON (or raw) body."""
    raw = body if isinstance(body, bytes) else json.dumps(body).encode()
    req = MagicMock()
    req.method = "POST"
    req.headers = headers or {"content-type": "application/json"}
    req.body = AsyncMock(return_value=raw)
    req.client = MagicMock()
    req.client.host = "127.0.0.1"
    return req


def _json(response) -> dict:
    return json.loads(response.body)


async def _logs(db, status: str | None = None) -> list[WebhookLog]:
    stmt = select(WebhookLog)
    if status:
        stmt = stmt.where(WebhookLog.status == status)
    result = await db.execute(stmt)
    return list(result.scalars().all())


def _patch_processor(**kwargs):
    kwargs.setdefault("return_value", SALE_RESULT)
    return patch(
        "azura_pos.api.loyverse_webhook.process_pos_sale",
        new_callable=AsyncMock,
        **kwargs,
    )


class TestParseBody:
    def test_valid_json(self):
        assert _parse_body(b'{"a": 1}') == {"a": 1}

    def test_invalid_json_keeps_raw_text(self):
        assert _parse_body(b"not json") == {"raw": "not json", "error": "Invalid JSON"}

    def test_empty_body(self):
        assert _parse_body(b"") == {"raw": "", "error": "Invalid JSON"}


class TestAuditTrail:
    async def test_received_row_records_method_headers_and_body(self, db, sample_receipt_body):
        with _patch_processor():
            await loyverse_webhook(
                _make_request(sample_receipt_body, headers={"x-loyverse-signature": "abc"}), db,
            )

        received = await _logs(db, "received")
        assert len(received) == 1
        assert received[0].payload["method"] == "POST"
        assert received[0].payload["headers"] == {"x-loyverse-signature": "abc"}
        assert received[0].payload["body"] == sample_receipt_body
        assert received[0].error_message is None

    async def test_invalid_json_is_logged_raw(self, db):
        response = await loyverse_webhook(_make_request(b"{broken"), db)

        assert response.status_code == 200
        received = await _logs(db, "received")
        assert received[0].payload["body"] == {"raw": "{broken", "error": "Invalid JSON"}


class TestIgnoredEvents:
    async def test_receipt_without_line_items_is_ignored(self, db):
        response = await loyverse_webhook(
            _make_request({"receipts": [{"receipt_number": "1-1", "total_money": 5}]}), db,
        )

        assert response.status_code == 200
        assert _json(response) == {"message": IGNORED_MESSAGE}
        logs = await _logs(db)
        assert [log.status for log in logs] == ["received"]

    async def test_empty_receipts_batch_is_ignored(self, db):
        response = await loyverse_webhook(_make_request({"receipts": []}), db)

        assert _json(response) == {"message": "Ignored event"}
        assert len(await _logs(db)) == 1

    async def test_non_sale_event_is_ignored(self, db):
        response = await loyverse_webhook(
            _make_request({"type": "customers.update", "customers": [{"id": "c1"}]}), db,
        )

        assert _json(response) == {"message": IGNORED_MESSAGE}

    async def test_json_array_body_is_ignored(self, db):
        response = await loyverse_webhook(_make_request([1, 2, 3]), db)

        assert response.status_code == 200
        assert _json(response) == {"message": IGNORED_MESSAGE}


class TestNoMatchingProducts:
    async def test_unknown_items_return_soft_failure(self, db, croissant):
        body = {"receipts": [{"line_items": [{"item_name": "Baguete", "quantity": 1}]}]}

        with _patch_processor() as mock_process:
            response = await loyverse_webhook(_make_request(body), db)

        assert response.status_code == 200
        assert _json(response) == {"message": NO_MATCH_MESSAGE}
        mock_process.assert_not_awaited()

        errors = await _logs(db, "error")
        assert len(errors) == 1
        assert errors[0].error_message == "No matching products found"
        assert errors[0].payload["unmatched"] == ["Baguete"]
        assert len(await _logs(db)) == 2

    async def test_empty_line_items_reaches_no_match_branch(self, db, croissant):
        response = await loyverse_webhook(_make_request({"line_items": []}), db)

        assert _json(response) == {"message": NO_MATCH_MESSAGE}
        assert len(await _logs(db, "error")) == 1

    async def test_no_products_at_all(self, db):
        body = {"line_items": [{"item_name": "Croissant", "quantity": 1}]}
        response = await loyverse_webhook(_make_request(body), db)

        assert _json(response) == {"message": NO_MATCH_MESSAGE}


class TestMatchedSale:
    async def test_case_insensitive_match_builds_sale_payload(self, db, gestor, croissant, sample_receipt_body):
        with _patch_processor() as mock_process:
            response = await loyverse_webhook(_make_request(sample_receipt_body), db)

        assert response.status_code == 200
        assert _json(response) == SALE_RESULT

        mock_process.assert_awaited_once()
        _, user_id, sale_payload = mock_process.await_args.args
        assert user_id == gestor.id
        assert sale_payload == {
            "date_time": "2026-10-17T12:30:00.000Z",
            "payment_method": "Loyverse",
            "total_amount": 24.0,
            "sold_items": [{"product_id": str(croissant.id), "quantity": 2}],
        }

    async def test_unmatched_items_are_dropped(self, db, gestor, croissant):
        body = {
            "receipts": [{
                "line_items": [
                    {"item_name": "CROISSANT", "quantity": 3},
                    {"item_name": "Café expresso", "quantity": 1},
                ],
            }]
        }

        with _patch_processor() as mock_process:
            await loyverse_webhook(_make_request(body), db)

        sale_payload = mock_process.await_args.args[2]
        assert sale_payload["sold_items"] == [{"product_id": str(croissant.id), "quantity": 3}]

        success = await _logs(db, "success")
        assert len(success) == 1
        assert success[0].error_message == "Unmatched items: Café expresso"

    async def test_single_receipt_body_without_receipts_key(self, db, gestor, croissant):
        body = {"total_money": 12, "line_items": [{"item_name": "Croissant", "quantity": 1}]}

        with _patch_processor() as mock_process:
            response = await loyverse_webhook(_make_request(body), db)

        assert response.status_code == 200
        assert mock_process.await_args.args[2]["total_amount"] == 12

    async def test_missing_quantity_counts_as_one(self, db, gestor, croissant):
        body = {"line_items": [{"item_name": "Croissant"}]}

        with _patch_processor() as mock_process:
            await loyverse_webhook(_make_request(body), db)

        assert mock_process.await_args.args[2]["sold_items"][0]["quantity"] == 1

    async def test_inactive_products_still_match(self, db, gestor):
        product = SaleProduct(user_id=gestor.id, name="Bolo de Cenoura", is_active=False, components=[])
        db.add(product)
        await db.commit()

        body = {"line_items": [{"item_name": "bolo de cenoura", "quantity": 1}]}
        with _patch_processor() as mock_process:
            await loyverse_webhook(_make_request(body), db)

        assert mock_process.await_args.args[2]["sold_items"] == [
            {"product_id": str(product.id), "quantity": 1}
        ]

    async def test_success_row_holds_only_sale_id(self, db, gestor, croissant, sample_receipt_body):
        with _patch_processor():
            await loyverse_webhook(_make_request(sample_receipt_body), db)

        success = await _logs(db, "success")
        assert len(success) == 1
        assert success[0].payload == {"sale_id": SALE_RESULT["sale_id"]}
        assert success[0].error_message is None
        assert len(await _logs(db)) == 2

    async def test_payment_method_follows_settings(self, db, gestor, croissant, sample_receipt_body):
        settings = MagicMock()
        settings.pos_payment_method = "Loyverse Loja 2"

        with _patch_processor() as mock_process, patch(
            "azura_pos.api.loyverse_webhook.get_settings", return_value=settings,
        ):
            await loyverse_webhook(_make_request(sample_receipt_body), db)

        assert mock_process.await_args.args[2]["payment_method"] == "Loyverse Loja 2"


class TestFatalErrors:
    async def test_missing_gestor_returns_500(self, db, croissant, sample_receipt_body):
        # croissant's owner is a gestor; demote it so no owner remains
        owner = (await db.execute(select(Profile))).scalar_one()
        owner.role = "venda"
        await db.commit()

        with _patch_processor() as mock_process:
            response = await loyverse_webhook(_make_request(sample_receipt_body), db)

        assert response.status_code == 500
        assert _json(response) == {"error": "No gestor found: empty result"}
        mock_process.assert_not_awaited()

        errors = await _logs(db, "error")
        assert len(errors) == 1
        assert errors[0].error_message == "No gestor found: empty result"
        assert "SaleOwnerNotFoundError" in errors[0].payload["error_stack"]

    async def test_processor_failure_returns_500(self, db, gestor, croissant, sample_receipt_body):
        with _patch_processor(side_effect=SaleProcessingError("RPC error: stock locked")):
            response = await loyverse_webhook(_make_request(sample_receipt_body), db)

        assert response.status_code == 500
        assert _json(response) == {"error": "RPC error: stock locked"}
        assert len(await _logs(db, "success")) == 0
        errors = await _logs(db, "error")
        assert errors[0].error_message == "RPC error: stock locked"

    async def test_failed_error_log_does_not_change_response(self, db, gestor, croissant, sample_receipt_body):
        with _patch_processor(side_effect=RuntimeError("boom")), patch(
            "azura_pos.services.webhook_log.record_webhook_log",
            new_callable=AsyncMock,
            side_effect=RuntimeError("db down"),
        ):
            response = await loyverse_webhook(_make_request(sample_receipt_body), db)

        assert response.status_code == 500
        assert _json(response) == {"error": "boom"}


class TestSignatureEnforcement:
    async def test_invalid_signature_rejected_when_enforced(self, db, sample_receipt_body):
        with patch(
            "azura_pos.api.loyverse_webhook.verify_loyverse_request", return_value=False,
        ), _patch_processor() as mock_process:
            response = await loyverse_webhook(_make_request(sample_receipt_body), db)

        assert response.status_code == 401
        assert _json(response) == {"error": "Invalid webhook signature"}
        mock_process.assert_not_awaited()
        # the delivery is still audited
        assert len(await _logs(db, "received")) == 1

    async def test_signature_not_checked_by_default(self, db, gestor, croissant, sample_receipt_body):
        req = _make_request(sample_receipt_body, headers={"x-loyverse-signature": "bogus"})
        with _patch_processor():
            response = await loyverse_webhook(req, db)

        assert response.status_code == 200
