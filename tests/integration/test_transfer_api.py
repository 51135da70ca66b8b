"""Integration tests for transfers, deposits and settlement over HTTP"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from lumabank.config import settings
from lumabank.infrastructure.database.models import BankTransaction
from lumabank.infrastructure.database.repositories import AccountRepository


def _balance(db, account) -> int:
    db.expire_all()
    return AccountRepository(db).current_balance(account.id)


def _ledger_rows(db) -> int:
    return db.execute(select(func.count()).select_from(BankTransaction)).scalar_one()


@pytest.fixture
def alice(make_customer):
    return make_customer("alice@example.com", balance=Decimal("100.00"), name="Alice")


@pytest.fixture
def bob(make_customer):
    return make_customer("bob@example.com", balance=Decimal("50.00"), name="Bob")


def test_internal_transfer_completes(client: TestClient, db, alice, bob, user_headers):
    """Test an internal transfer of 30.00 from 100.00 to 50.00"""
    response = client.post(
        "/v1/user/transfer",
        json={"receiver_account": bob[1].account_number, "amount": "30.00", "type": "internal", "narration": "Dinner"},
        headers=user_headers(*alice),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Transfer completed successfully."
    assert data["transaction"]["status"] == "completed"
    assert data["transaction"]["amount"] == "30.00"
    assert data["transaction"]["narration"] == "Dinner"
    assert _balance(db, alice[1]) == 7000
    assert _balance(db, bob[1]) == 8000
    assert "X-RateLimit-Remaining" in response.headers


def test_transfer_with_insufficient_funds(client: TestClient, db, make_customer, bob, user_headers):
    poor = make_customer("poor@example.com", balance=Decimal("10.00"))

    response = client.post(
        "/v1/user/transfer",
        json={"receiver_account": bob[1].account_number, "amount": 50, "type": "internal"},
        headers=user_headers(*poor),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Insufficient balance", "available": "10.00", "requested": "50.00"}
    assert _balance(db, poor[1]) == 1000
    assert _ledger_rows(db) == 0


def test_deposit_credits_own_account(client: TestClient, db, alice, user_headers):
    response = client.post(
        "/v1/user/deposit",
        json={"amount": "200.00", "description": "Salary"},
        headers=user_headers(*alice),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["new_balance"] == "300.00"
    assert data["transaction"]["type"] == "deposit"
    assert data["transaction"]["status"] == "completed"
    assert data["transaction"]["sender_account"] is None
    assert data["transaction"]["narration"] == "Salary"
    assert _balance(db, alice[1]) == 30000


def test_deposit_above_limit_is_rejected(client: TestClient, db, alice, user_headers):
    response = client.post("/v1/user/deposit", json={"amount": "10000.01"}, headers=user_headers(*alice))

    assert response.status_code == 400
    assert "Maximum amount" in response.json()["error"]
    assert _balance(db, alice[1]) == 10000


def test_external_transfer_stays_pending(client: TestClient, db, alice, scheduler, user_headers):
    """Test an external transfer debits at once and waits for settlement"""
    response = client.post(
        "/v1/user/transfer",
        json={"receiver_account": "9999999999", "amount": "40.00", "type": "external"},
        headers=user_headers(*alice),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Transfer initiated successfully. Status: Pending external processing."
    assert data["transaction"]["status"] == "pending"
    assert data["transaction"]["type"] == "external"
    assert data["transaction"]["receiver_account"] == "9999999999"
    assert _balance(db, alice[1]) == 6000
    assert [str(t) for t in scheduler.scheduled] == [data["transaction"]["id"]]


def test_rejecting_pending_deposit_twice(
    client: TestClient, db, alice, make_admin, user_headers, admin_headers, monkeypatch
):
    """Test rejection fails a pending deposit without touching balances, and only once"""
    monkeypatch.setattr(settings, "deposit_requires_approval", True)
    admin = make_admin()

    deposit = client.post("/v1/user/deposit", json={"amount": "25.00"}, headers=user_headers(*alice))
    assert deposit.status_code == 200
    transaction_id = deposit.json()["transaction"]["id"]
    assert deposit.json()["transaction"]["status"] == "pending"

    body = {"transaction_id": transaction_id, "action": "reject"}
    first = client.post("/v1/admin/transactions/settle", json=body, headers=admin_headers(admin))
    assert first.status_code == 200
    assert first.json()["transaction"]["status"] == "failed"
    assert _balance(db, alice[1]) == 10000

    second = client.post("/v1/admin/transactions/settle", json=body, headers=admin_headers(admin))
    assert second.status_code == 400
    assert second.json()["error"] == "Transaction is already failed. Only pending transactions can be processed."


def test_transfer_to_own_account_is_denied(client: TestClient, db, alice, user_headers):
    number = alice[1].account_number
    formatted = f"{number[:5]}-{number[5:]}"

    response = client.post(
        "/v1/user/transfer",
        json={"receiver_account": formatted, "amount": "10.00", "type": "internal"},
        headers=user_headers(*alice),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Cannot transfer to your own account"
    assert _balance(db, alice[1]) == 10000
    assert _ledger_rows(db) == 0


def test_transfer_to_unknown_internal_account(client: TestClient, alice, user_headers):
    response = client.post(
        "/v1/user/transfer",
        json={"receiver_account": "1111111111", "amount": "10.00", "type": "internal"},
        headers=user_headers(*alice),
    )
    assert response.status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"receiver_account": "1234567890", "amount": "-5", "type": "internal"},
        {"receiver_account": "1234567890", "amount": "1.234", "type": "internal"},
        {"receiver_account": "1234567890", "amount": "5.00", "type": "wire"},
        {"receiver_account": "1234567890", "amount": "5.00", "type": "deposit"},
        {"receiver_account": "1234567890", "amount": "5.00", "type": "internal", "sender_account": "1"},
        {"receiver_account": "123", "amount": "5.00", "type": "internal"},
    ],
)
def test_malformed_transfer_requests(client: TestClient, alice, user_headers, body):
    response = client.post("/v1/user/transfer", json=body, headers=user_headers(*alice))
    assert response.status_code == 400
    assert "error" in response.json()


def test_transfer_requires_token(client: TestClient):
    response = client.post(
        "/v1/user/transfer", json={"receiver_account": "1234567890", "amount": "5.00", "type": "internal"}
    )
    assert response.status_code == 401
    assert response.json() == {"error": "No token provided"}


def test_admin_token_cannot_transfer(client: TestClient, make_admin, admin_headers):
    response = client.post(
        "/v1/user/transfer",
        json={"receiver_account": "1234567890", "amount": "5.00", "type": "internal"},
        headers=admin_headers(make_admin()),
    )
    assert response.status_code == 403


def test_transfer_rate_limit(client: TestClient, alice, bob, user_headers):
    """Test the eleventh transfer within a minute is throttled"""
    headers = user_headers(*alice)
    body = {"receiver_account": bob[1].account_number, "amount": "1.00", "type": "internal"}

    for _ in range(10):
        assert client.post("/v1/user/transfer", json=body, headers=headers).status_code == 200

    response = client.post("/v1/user/transfer", json=body, headers=headers)
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
    assert response.headers["X-RateLimit-Remaining"] == "0"


def test_history_lists_both_directions(client: TestClient, alice, bob, user_headers):
    client.post(
        "/v1/user/transfer",
        json={"receiver_account": bob[1].account_number, "amount": "5.00", "type": "internal"},
        headers=user_headers(*alice),
    )
    client.post(
        "/v1/user/transfer",
        json={"receiver_account": alice[1].account_number, "amount": "2.00", "type": "internal"},
        headers=user_headers(*bob),
    )

    response = client.get("/v1/user/transactions", headers=user_headers(*alice))

    assert response.status_code == 200
    amounts = sorted(t["amount"] for t in response.json()["transactions"])
    assert amounts == ["2.00", "5.00"]
