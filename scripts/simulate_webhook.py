"""
Simulate a Loyverse sale via the webhook endpoint.

Usage:
    python scripts/simulate_webhook.py
    python scripts/simulate_webhook.py --item "Pão de Queijo" --quantity 3
    python scripts/simulate_webhook.py --base-url https://pos.example.com --total 12.00
"""
import argparse
import asyncio
import logging
import time
from datetime import datetime, timezone

import httpx

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BASE_URL = "http://localhost:8000"
WEBHOOK_PATH = "/functions/v1/loyverse-webhook"


def build_receipt_payload(item_name: str, quantity: float, total: float) -> dict:
    """A single-receipt body shaped like a Loyverse receipts.update delivery."""
    return {
        "receipts": [{
            "receipt_number": f"SIM-{int(time.time() * 1000)}",
            "created_at": datetime.now(timezone.utc).isoformat(),
            "total_money": total,
            "line_items": [
                {"item_name": item_name, "quantity": quantity, "total_money": total},
            ],
        }]
    }


async def simulate_sale(base_url: str, item_name: str, quantity: float, total: float) -> httpx.Response:
    payload = build_receipt_payload(item_name, quantity, total)
    async with httpx.AsyncClient(timeout=30) as client:
        resp = await client.post(f"{base_url.rstrip('/')}{WEBHOOK_PATH}", json=payload)
    logger.info("Webhook response: %s %s", resp.status_code, resp.text)
    return resp


async def main():
    parser = argparse.ArgumentParser(description="Simulate a Loyverse receipt webhook")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--item", default="Croissant")
    parser.add_argument("--quantity", type=float, default=1)
    parser.add_argument("--total", type=float, default=15.50)
    args = parser.parse_args()

    logger.info("Simulating sale of %s x%s...", args.item, args.quantity)
    resp = await simulate_sale(args.base_url, args.item, args.quantity, args.total)
    if resp.is_success:
        logger.info("Webhook accepted the request - check webhook_logs for the outcome")
    else:
        logger.error("Webhook failed with status %s", resp.status_code)


if __name__ == "__main__":
    asyncio.run(main())
