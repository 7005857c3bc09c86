"""
Receipt Dispatcher.

Publishing side runs in the endpoint once the passage decision is final
and is best-effort: a Redis outage costs a receipt, never a passage.
Consuming side runs in the receipt worker and turns a passage id into
in-app notifications. Messages that fail there land in the dead letter queue.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Union

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from tollway.app.core.config import settings
from tollway.app.core.exceptions import ResourceNotFoundError
from tollway.app.core.money import format_money, to_money
from tollway.app.core.redis_client import get_redis
from tollway.app.core.reliability import CircuitOpenError, receipt_circuit_breaker
from tollway.app.models.dlq import DeadLetterQueue, DLQStatus
from tollway.app.models.enums import PaymentMethod
from tollway.app.models.notification import Notification, NotificationType
from tollway.app.repositories.accounts import AccountRepository
from tollway.app.repositories.toll_passages import TollPassageRepository
from tollway.app.services.notification_service import NotificationService

logger = logging.getLogger("tollway.receipts")

TASK_NAME = "receipt_dispatch"

Message = Union[str, bytes, Dict[str, Any]]


class ReceiptDispatcher:

    @staticmethod
    async def publish(passage_id: int) -> bool:
        """Queue a receipt for the passage. Returns False if it was dropped."""
        message = json.dumps({"passage_id": passage_id})
        client = await get_redis()

        async def push():
            return await asyncio.wait_for(
                client.lpush(settings.receipt_queue_name, message),
                settings.receipt_publish_timeout_seconds,
            )

        try:
            await receipt_circuit_breaker.call(push)
        except CircuitOpenError:
            logger.warning("Receipt queue circuit open, dropping receipt", extra={"passage_id": passage_id})
            return False
        except asyncio.TimeoutError:
            logger.error("Receipt queue too slow, dropping receipt", extra={"passage_id": passage_id})
            return False
        except (RedisError, OSError):
            logger.exception("Failed to queue receipt", extra={"passage_id": passage_id})
            return False
        return True

    @staticmethod
    async def handle(db: AsyncSession, message: Message) -> List[Notification]:
        """
        Write the notifications a passage calls for and commit them.

        - receipt: successful wallet passage
        - overweight fine notice: a fine was charged
        - low balance alert: balance below the threshold after a wallet
          passage, or a rejection for insufficient balance
        """
        payload = ReceiptDispatcher._decode(message)
        passage_id = payload["passage_id"]

        passage = await TollPassageRepository.get(db, passage_id)
        if passage is None:
            raise ResourceNotFoundError("Toll passage", passage_id)
        if passage.account_id is None:
            return []

        account = await AccountRepository.get(db, passage.account_id)
        balance = to_money(await AccountRepository.get_balance(db, passage.account_id))
        meta = {"passage_id": passage.id, "reference": passage.reference}
        created = []

        is_wallet = passage.was_successful and passage.payment_method == PaymentMethod.WALLET

        if is_wallet:
            created.append(await NotificationService.create_notification(
                db,
                user_id=account.user_id,
                title="Toll receipt",
                message=(
                    f"Paid {format_money(passage.total_amount)} "
                    f"(toll {format_money(passage.toll_amount)}, fine {format_money(passage.fine_amount)}). "
                    f"Balance: {format_money(balance)}"
                ),
                type=NotificationType.RECEIPT,
                metadata={**meta, "total_amount": format_money(passage.total_amount)},
            ))

        if passage.was_successful and to_money(passage.fine_amount) > 0:
            created.append(await NotificationService.create_notification(
                db,
                user_id=account.user_id,
                title="Overweight fine charged",
                message=(
                    f"Your vehicle weighed {passage.vehicle_weight_kg} kg, above the gate limit. "
                    f"A fine of {format_money(passage.fine_amount)} was charged."
                ),
                type=NotificationType.OVERWEIGHT_FINE,
                metadata={**meta, "fine_amount": format_money(passage.fine_amount)},
            ))

        rejected_for_funds = passage.error_code == "INSUFFICIENT_BALANCE"
        if rejected_for_funds or (is_wallet and balance < settings.low_balance_threshold):
            created.append(await NotificationService.create_notification(
                db,
                user_id=account.user_id,
                title="Low balance",
                message=f"Your wallet balance is {format_money(balance)}. Please top up to keep passing toll gates.",
                type=NotificationType.LOW_BALANCE,
                metadata={**meta, "balance": format_money(balance)},
            ))

        await db.commit()
        logger.info(
            "Receipt dispatched",
            extra={"passage_id": passage.id, "notifications": len(created)}
        )
        return created

    @staticmethod
    async def process(db: AsyncSession, message: Message) -> bool:
        """handle() one message, dead-lettering it on failure."""
        try:
            await ReceiptDispatcher.handle(db, message)
            return True
        except Exception as exc:
            await db.rollback()
            logger.exception("Receipt delivery failed")
            await ReceiptDispatcher.dead_letter(db, message, exc)
            return False

    @staticmethod
    async def dead_letter(db: AsyncSession, message: Message, exc: Exception) -> DeadLetterQueue:
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        item = DeadLetterQueue(
            task_name=TASK_NAME,
            error_message=f"{type(exc).__name__}: {exc}",
            payload={"message": message},
            status=DLQStatus.FAILED,
        )
        db.add(item)
        await db.commit()
        return item

    @staticmethod
    def _decode(message: Message) -> Dict[str, Any]:
        if isinstance(message, dict):
            return message
        payload = json.loads(message)
        if not isinstance(payload, dict) or "passage_id" not in payload:
            raise ValueError("Receipt message has no passage_id")
        return payload
