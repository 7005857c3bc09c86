"""
Receipt worker.

Consumes the receipt queue and writes notifications:

    python -m tollway.app.workers.receipt_worker
"""

import asyncio
import logging
from typing import Optional

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from tollway.app.core.config import settings
from tollway.app.core.observability import configure_logging
from tollway.app.core.redis_client import get_redis
from tollway.app.db.session import AsyncSessionLocal
from tollway.app.services.receipt_dispatcher import ReceiptDispatcher

logger = logging.getLogger("tollway.workers.receipts")


async def run_once(session_factory=AsyncSessionLocal, timeout: Optional[int] = None) -> Optional[bool]:
    """
    Wait for one message and process it.

    Returns None when the wait timed out, otherwise whether delivery succeeded.
    If even dead-lettering fails, the message goes back on the queue.
    """
    client = await get_redis()
    item = await client.brpop(
        settings.receipt_queue_name,
        timeout=settings.receipt_worker_block_seconds if timeout is None else timeout,
    )
    if item is None:
        return None

    _, message = item
    async with session_factory() as db:
        try:
            return await ReceiptDispatcher.process(db, message)
        except SQLAlchemyError:
            await client.rpush(settings.receipt_queue_name, message)
            raise


async def run_forever(stop: Optional[asyncio.Event] = None, session_factory=AsyncSessionLocal) -> None:
    logger.info("Receipt worker listening on %s", settings.receipt_queue_name)
    backoff = settings.receipt_worker_retry_seconds
    while stop is None or not stop.is_set():
        try:
            await run_once(session_factory=session_factory)
        except (RedisError, OSError):
            logger.exception("Receipt queue unavailable, retrying")
        except SQLAlchemyError:
            logger.exception("Receipt store unavailable, retrying")
        else:
            backoff = settings.receipt_worker_retry_seconds
            continue
        await asyncio.sleep(min(backoff, settings.receipt_worker_max_backoff_seconds))
        backoff *= 2


def main() -> None:
    configure_logging(settings.log_level)
    try:
        asyncio.run(run_forever())
    except KeyboardInterrupt:
        logger.info("Receipt worker stopped")


if __name__ == "__main__":
    main()
