"""
Print the most recent webhook audit rows.

Usage:
    python scripts/check_webhook_logs.py
    python scripts/check_webhook_logs.py --limit 20
    python scripts/check_webhook_logs.py --manual-test   # insert a manual_test row first
"""
import argparse
import asyncio
import json
import logging

from azura_pos.database import async_session_factory, dispose_engine
from azura_pos.services.webhook_log import list_recent_webhook_logs, record_webhook_log

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    parser = argparse.ArgumentParser(description="Inspect webhook_logs")
    parser.add_argument("--limit", type=int, default=5)
    parser.add_argument("--manual-test", action="store_true")
    args = parser.parse_args()

    try:
        async with async_session_factory() as db:
            if args.manual_test:
                await record_webhook_log(db, "manual_test", {"test": "manual_insert"})
                logger.info("Inserted manual_test log row")

            logs = await list_recent_webhook_logs(db, limit=args.limit)
            if not logs:
                logger.warning("No logs found - the webhook has not been called yet")
                return

            logger.info("Found %d logs", len(logs))
            for index, log in enumerate(logs, start=1):
                print(f"\n[{index}] Time: {log.created_at} | Status: {log.status}")
                if log.error_message:
                    print(f"    Error: {log.error_message}")
                print(f"    Payload: {json.dumps(log.payload, default=str)[:500]}")
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
