"""
Failure Injection Tests.

Validates resilience against component failures.
"""

import asyncio
import pytest
from decimal import Decimal
from sqlalchemy.exc import IntegrityError, OperationalError

from tollway.app.main import app
from tollway.app.db.session import get_db
from tollway.app.core.config import settings
from tollway.app.core.exceptions import GatewayTimeoutError
from tollway.app.core.reliability import CircuitBreaker, CircuitOpenError, receipt_circuit_breaker
from tollway.app.domain.ledger.ledger_service import LedgerService
from tollway.app.domain.tolling.passage_authorizer import PassageAuthorizer, within_deadline
from tollway.app.models.dlq import DeadLetterQueue, DLQStatus
from tollway.app.models.toll_passage import TollPassage
from tollway.app.services.receipt_dispatcher import ReceiptDispatcher

from conftest import TestingSessionLocal, count_rows, create_driver, transactions_for

VERIFY_URL = "/v1/toll-gate/verify"


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=1)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout():
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=10)

    async def failing_func():
        raise ValueError("Boom")

    async def ok_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    with pytest.raises(CircuitOpenError):
        await cb.call(ok_func)

    # Pretend the last failure happened before the reset timeout
    cb.last_failure_time -= 11
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"


@pytest.mark.asyncio
async def test_deadline_cancels_slow_operation():
    async def slow():
        await asyncio.sleep(5)

    with pytest.raises(GatewayTimeoutError) as exc_info:
        await within_deadline(slow(), timeout=0.01)
    assert exc_info.value.status_code == 504


@pytest.mark.asyncio
async def test_slow_passage_answers_504(client, db_session, gate, monkeypatch, mocker):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"))
    monkeypatch.setattr(settings, "passage_timeout_seconds", 0.05)

    original = PassageAuthorizer.authorize

    async def slow_authorize(db, request):
        await asyncio.sleep(1)
        return await original(db, request)

    mocker.patch.object(PassageAuthorizer, "authorize", slow_authorize)

    response = await client.post(VERIFY_URL, json={"rfid_uid": "RFID-0001", "toll_gate_id": gate.id})

    assert response.status_code == 504
    assert response.json()["error_code"] == "GATEWAY_TIMEOUT"
    assert await LedgerService.balance_of(db_session, account.id) == Decimal("10000.00")
    assert await count_rows(db_session, TollPassage) == 0


@pytest.mark.asyncio
async def test_failed_commit_leaves_no_charge(client, db_session, gate):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"))

    async def failing_get_db():
        async with TestingSessionLocal() as session:
            async def broken_commit():
                raise OperationalError("COMMIT", {}, Exception("disk I/O error"))
            session.commit = broken_commit
            yield session

    original = app.dependency_overrides[get_db]
    app.dependency_overrides[get_db] = failing_get_db
    try:
        response = await client.post(VERIFY_URL, json={"rfid_uid": "RFID-0001", "toll_gate_id": gate.id})
    finally:
        app.dependency_overrides[get_db] = original

    assert response.status_code == 500
    assert response.json()["error_code"] == "TRANSACTION_FAILED"
    assert await LedgerService.balance_of(db_session, account.id) == Decimal("10000.00")
    assert await transactions_for(db_session, account.id) == 1
    assert await count_rows(db_session, TollPassage) == 0


@pytest.mark.asyncio
async def test_slow_receipt_queue_does_not_time_out_charged_passage(client, db_session, gate, mock_redis, monkeypatch):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"))
    monkeypatch.setattr(settings, "passage_timeout_seconds", 0.2)
    monkeypatch.setattr(settings, "receipt_publish_timeout_seconds", 0.5)

    async def slow_lpush(key, *values):
        await asyncio.sleep(1)
        return 1

    monkeypatch.setattr(mock_redis, "lpush", slow_lpush)

    # No idempotency key, so a 504 here would make the device pay twice
    responses = [
        await client.post(VERIFY_URL, json={"rfid_uid": "RFID-0001", "toll_gate_id": gate.id})
        for _ in range(2)
    ]
    scan = await client.post("/v1/hardware/scan", json={"gate_identifier": "GATE-001", "rfid_tag": "RFID-0001"})

    assert [r.status_code for r in responses] == [200, 200]
    assert [r.json()["data"]["new_balance"] for r in responses] == ["9500.00", "9000.00"]
    assert scan.status_code == 200
    assert scan.json()["gate_action"] == "open"
    assert await LedgerService.balance_of(db_session, account.id) == Decimal("8500.00")
    assert await transactions_for(db_session, account.id) == 4
    assert receipt_circuit_breaker.failures == 3


@pytest.mark.asyncio
async def test_constraint_failure_is_not_reported_as_duplicate(client, db_session, gate):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"))

    async def failing_get_db():
        async with TestingSessionLocal() as session:
            async def broken_commit():
                raise IntegrityError("INSERT INTO toll_passages", {}, Exception("FOREIGN KEY constraint failed"))
            session.commit = broken_commit
            yield session

    original = app.dependency_overrides[get_db]
    app.dependency_overrides[get_db] = failing_get_db
    try:
        response = await client.post(VERIFY_URL, json={"rfid_uid": "RFID-0001", "toll_gate_id": gate.id})
    finally:
        app.dependency_overrides[get_db] = original

    assert response.status_code == 500
    assert response.json()["error_code"] == "TRANSACTION_FAILED"
    assert await LedgerService.balance_of(db_session, account.id) == Decimal("10000.00")
    assert await count_rows(db_session, TollPassage) == 0


@pytest.mark.asyncio
async def test_receipt_queue_outage_reported_by_health(client, mock_redis):
    healthy = await client.get("/health")
    assert healthy.json()["receipt_queue"] == "up"

    mock_redis.fail = True
    degraded = await client.get("/health")
    assert degraded.status_code == 200
    assert degraded.json()["status"] == "healthy"
    assert degraded.json()["receipt_queue"] == "down"


@pytest.mark.asyncio
async def test_dlq_capture(db_session):
    """A delivery that fails in the worker is captured in the DLQ."""
    item = await ReceiptDispatcher.dead_letter(db_session, b'{"passage_id": 500}', RuntimeError("SMTP timeout"))

    assert item.id is not None
    assert item.status == DLQStatus.FAILED
    assert item.retry_count == 0
    assert item.error_message == "RuntimeError: SMTP timeout"
    assert item.payload == {"message": '{"passage_id": 500}'}
    assert await count_rows(db_session, DeadLetterQueue) == 1
