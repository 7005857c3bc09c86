"""
Staff, Admin and Wallet API Tests.
"""

import pytest
from decimal import Decimal
from sqlalchemy import select

from tollway.app.domain.ledger.ledger_service import LedgerService
from tollway.app.models.enums import ManualTransactionType, PaymentMethod, UserRole
from tollway.app.models.manual_transaction import ManualTransaction
from tollway.app.models.toll_passage import TollPassage
from tollway.app.services.audit import AuditAction, get_audit_trail

from conftest import auth_headers, count_rows, create_driver, create_user, transactions_for


@pytest.mark.asyncio
async def test_cash_payment_records_passage_without_wallet(client, db_session, gate, staff_user):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"), registration_number="ABC0001")

    response = await client.post("/v1/staff/cash-payment", headers=auth_headers(staff_user), json={
        "toll_gate_id": gate.id,
        "amount": "400.00",
        "vehicle_weight_kg": 6000,
        "vehicle_registration": "abc0001",
        "driver_name": "Walk-in Driver",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["gate_action"] == "open"
    assert body["expected_amount"] == "1500.00"
    assert body["manual_transaction"]["transaction_type"] == "cash_payment"
    assert body["passage"]["payment_method"] == "cash_payment"
    assert body["passage"]["total_amount"] == "400.00"
    assert body["passage"]["is_overweight"] is True
    assert body["passage"]["account_id"] == account.id

    # Cash never touches the wallet
    assert await transactions_for(db_session, account.id) == 1
    assert await LedgerService.balance_of(db_session, account.id) == Decimal("10000.00")

    trail = await get_audit_trail(db_session, action=AuditAction.CASH_PAYMENT_RECORDED)
    assert trail[0].actor_id == staff_user.id
    assert trail[0].meta_data["expected_amount"] == "1500.00"


@pytest.mark.asyncio
async def test_cash_payment_for_unregistered_vehicle(client, db_session, gate, staff_user):
    response = await client.post("/v1/staff/cash-payment", headers=auth_headers(staff_user), json={
        "toll_gate_id": gate.id, "amount": 500, "vehicle_registration": "UNKNOWN-1",
    })

    assert response.status_code == 200
    assert response.json()["passage"]["account_id"] is None
    assert response.json()["manual_transaction"]["account_id"] is None


@pytest.mark.asyncio
async def test_manual_override_lets_vehicle_through_free(client, db_session, gate, staff_user):
    _, account, vehicle = await create_driver(db_session, balance=Decimal("50"))

    response = await client.post("/v1/staff/manual-override", headers=auth_headers(staff_user), json={
        "toll_gate_id": gate.id, "reason": "Ambulance on call", "rfid_tag": "rfid-0001",
    })

    assert response.status_code == 200
    passage = response.json()["passage"]
    assert passage["payment_method"] == "manual_override"
    assert passage["total_amount"] == "0.00"
    assert passage["override_reason"] == "Ambulance on call"
    assert passage["vehicle_id"] == vehicle.id
    assert response.json()["gate_action"] == "open"

    assert await transactions_for(db_session, account.id) == 1
    manual = (await db_session.execute(select(ManualTransaction))).scalar_one()
    assert manual.transaction_type == ManualTransactionType.MANUAL_OVERRIDE
    assert manual.meta_data["passage_id"] == passage["id"]


@pytest.mark.asyncio
async def test_override_requires_reason(client, gate, staff_user):
    response = await client.post("/v1/staff/manual-override", headers=auth_headers(staff_user), json={
        "toll_gate_id": gate.id, "reason": "",
    })

    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_fine_debits_wallet(client, db_session, gate, staff_user):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"))

    response = await client.post("/v1/staff/fines", headers=auth_headers(staff_user), json={
        "toll_gate_id": gate.id, "amount": "200.00", "reason": "Lane violation", "account_id": account.id,
    })

    assert response.status_code == 200
    assert response.json()["new_balance"] == "9800.00"
    assert response.json()["gate_action"] == "close"

    history = await LedgerService.history(db_session, account.id, limit=1)
    assert history[0].description == "Manual fine: Lane violation"
    assert history[0].reference.startswith("FINE-")
    assert (await LedgerService.verify_conservation(db_session, account.id)).consistent


@pytest.mark.asyncio
async def test_fine_without_account_only_records(client, db_session, gate, staff_user):
    response = await client.post("/v1/staff/fines", headers=auth_headers(staff_user), json={
        "toll_gate_id": gate.id, "amount": "150", "reason": "Damaged barrier",
    })

    assert response.status_code == 200
    assert response.json()["new_balance"] is None
    assert await count_rows(db_session, ManualTransaction) == 1


@pytest.mark.asyncio
async def test_fine_larger_than_balance(client, db_session, gate, staff_user):
    _, account, _ = await create_driver(db_session, balance=Decimal("100"))

    response = await client.post("/v1/staff/fines", headers=auth_headers(staff_user), json={
        "toll_gate_id": gate.id, "amount": "200.00", "reason": "Lane violation", "account_id": account.id,
    })

    assert response.status_code == 402
    assert response.json()["error_code"] == "INSUFFICIENT_BALANCE"
    assert await count_rows(db_session, ManualTransaction) == 0
    assert await LedgerService.balance_of(db_session, account.id) == Decimal("100.00")


@pytest.mark.asyncio
async def test_staff_endpoints_reject_drivers(client, db_session, gate):
    driver, _, _ = await create_driver(db_session)

    response = await client.post("/v1/staff/manual-override", headers=auth_headers(driver), json={
        "toll_gate_id": gate.id, "reason": "Let me through",
    })

    assert response.status_code == 403
    assert response.json()["error_code"] == "FORBIDDEN"
    assert await count_rows(db_session, TollPassage) == 0


@pytest.mark.asyncio
async def test_staff_endpoints_require_token(client, gate):
    response = await client.post("/v1/staff/cash-payment", json={"toll_gate_id": gate.id, "amount": 500})

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_cash_payment_at_unknown_gate(client, staff_user):
    response = await client.post("/v1/staff/cash-payment", headers=auth_headers(staff_user), json={
        "toll_gate_id": 777, "amount": 500,
    })

    assert response.status_code == 404
    assert response.json()["error_code"] == "GATE_NOT_FOUND"


@pytest.mark.asyncio
async def test_driver_lookup(client, db_session, gate, staff_user):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"), registration_number="KA01AB1234")
    await client.post("/v1/toll-gate/verify", json={"rfid_uid": "RFID-0001", "toll_gate_id": gate.id})

    by_tag = await client.get(
        "/v1/staff/driver-lookup", params={"rfid_tag": "rfid-0001"}, headers=auth_headers(staff_user)
    )
    assert by_tag.status_code == 200
    body = by_tag.json()
    assert body["account_id"] == account.id
    assert body["balance"] == "9500.00"
    assert body["vehicle"]["registration_number"] == "KA01AB1234"
    assert [p["payment_method"] for p in body["recent_passages"]] == [PaymentMethod.WALLET.value]

    by_plate = await client.get(
        "/v1/staff/driver-lookup", params={"registration_number": "ka01ab1234"}, headers=auth_headers(staff_user)
    )
    assert by_plate.json()["account_id"] == account.id

    missing = await client.get(
        "/v1/staff/driver-lookup", params={"rfid_tag": "NOPE"}, headers=auth_headers(staff_user)
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_admin_credit_is_idempotent_by_reference(client, db_session, admin_user):
    _, account, _ = await create_driver(db_session, balance=Decimal("0"))
    payload = {"amount": "2500.00", "description": "Card top-up", "reference": "PAY-778899"}

    first = await client.post(f"/v1/admin/accounts/{account.id}/credit", headers=auth_headers(admin_user), json=payload)
    second = await client.post(f"/v1/admin/accounts/{account.id}/credit", headers=auth_headers(admin_user), json=payload)

    assert first.status_code == 200
    assert first.json()["transaction"]["balance_after"] == "2500.00"
    assert first.json()["transaction"]["type"] == "credit"
    assert second.status_code == 409
    assert second.json()["error_code"] == "DUPLICATE_REFERENCE"
    assert await LedgerService.balance_of(db_session, account.id) == Decimal("2500.00")

    trail = await get_audit_trail(db_session, action=AuditAction.WALLET_CREDITED)
    assert len(trail) == 1


@pytest.mark.asyncio
async def test_credit_rejects_non_positive_amount(client, db_session, admin_user):
    _, account, _ = await create_driver(db_session)

    response = await client.post(
        f"/v1/admin/accounts/{account.id}/credit", headers=auth_headers(admin_user), json={"amount": "0"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_credit_unknown_account(client, admin_user):
    response = await client.post(
        "/v1/admin/accounts/9999/credit", headers=auth_headers(admin_user), json={"amount": "10"}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_ledger_check(client, db_session, gate, admin_user, staff_user):
    _, account, _ = await create_driver(db_session, balance=Decimal("10000"))
    await client.post("/v1/toll-gate/verify", json={"rfid_uid": "RFID-0001", "toll_gate_id": gate.id})

    response = await client.get(f"/v1/admin/accounts/{account.id}/ledger-check", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert response.json() == {
        "account_id": account.id,
        "consistent": True,
        "balance": "9500.00",
        "ledger_sum": "9500.00",
        "broken_entry_ids": [],
    }

    # Admin only
    denied = await client.get(f"/v1/admin/accounts/{account.id}/ledger-check", headers=auth_headers(staff_user))
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_wallet_views(client, db_session, gate):
    user, account, _ = await create_driver(db_session, balance=Decimal("1200"))
    await client.post("/v1/toll-gate/verify", json={"rfid_uid": "RFID-0001", "toll_gate_id": gate.id})

    balance = await client.get("/v1/wallet/balance", headers=auth_headers(user))
    assert balance.status_code == 200
    assert balance.json() == {
        "account_id": account.id,
        "balance": "700.00",
        "is_governmental": False,
        "low_balance": True,
    }

    listing = await client.get("/v1/wallet/transactions", params={"limit": 1}, headers=auth_headers(user))
    body = listing.json()
    assert body["total"] == 2
    assert len(body["transactions"]) == 1
    assert body["transactions"][0]["amount"] == "-500.00"
    assert body["transactions"][0]["balance_after"] == "700.00"

    summary = await client.get("/v1/wallet/summary", params={"days": 3}, headers=auth_headers(user))
    series = summary.json()["series"]
    assert len(series) == 3
    assert series[-1]["debit_total"] == "500.00"
    assert series[-1]["credit_total"] == "1200.00"


@pytest.mark.asyncio
async def test_wallet_is_for_drivers(client, db_session, staff_user):
    response = await client.get("/v1/wallet/balance", headers=auth_headers(staff_user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_inactive_user_token_is_refused(client, db_session):
    user = await create_user(db_session, UserRole.STAFF)
    user.is_active = False
    await db_session.commit()

    response = await client.get("/v1/staff/driver-lookup", params={"rfid_tag": "X"}, headers=auth_headers(user))
    assert response.status_code == 403
