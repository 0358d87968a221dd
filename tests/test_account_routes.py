"""HTTP boundary: auth gate, amount parsing, error envelopes. No database needed."""

from types import SimpleNamespace

import pytest
from bson import ObjectId

from app.core.exceptions import InsufficientFundsError, InternalFailureError, RecipientNotFoundError
from app.deps import get_current_account, get_current_user, get_db_client, get_ledger

pytestmark = pytest.mark.asyncio


class FakeLedger:
    def __init__(self, balance: int = 0, error: Exception | None = None):
        self.balance = balance
        self.error = error
        self.calls = []

    async def _result(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error:
            raise self.error
        return self.balance

    async def get_balance(self, account):
        return await self._result("get_balance", account)

    async def add_money(self, actor, amount, idempotency_key=None):
        return await self._result("add_money", actor, amount, idempotency_key=idempotency_key)

    async def transfer(self, actor, target, amount, idempotency_key=None):
        return await self._result("transfer", actor, target, amount, idempotency_key=idempotency_key)

    async def pay_via_identifier(self, actor, phone_no, amount, idempotency_key=None):
        return await self._result("pay_via_identifier", actor, phone_no, amount, idempotency_key=idempotency_key)

    async def get_history(self, account, limit=None, offset=0):
        self.calls.append(("get_history", (account,), {"limit": limit, "offset": offset}))
        return []


@pytest.fixture
def fake_ledger():
    from app.main import app
    ledger = FakeLedger(balance=12345)
    app.dependency_overrides[get_current_account] = lambda: SimpleNamespace(id=ObjectId())
    app.dependency_overrides[get_ledger] = lambda: ledger
    return ledger


async def test_missing_token_is_401(client):
    r = await client.get("/api/v1/account/balance")
    assert r.status_code == 401
    body = r.json()
    assert body["error"]["code"] == "UNAUTHORIZED"
    assert "request_id" in body


@pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer not-a-jwt"])
async def test_bad_token_is_401(client, header):
    r = await client.post("/api/v1/account/add-money", json={"amount": "10"}, headers={"Authorization": header})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "UNAUTHORIZED"


async def test_token_for_malformed_user_id_is_401(client):
    from app.core.security import create_access_token
    token = create_access_token("not-an-object-id")
    r = await client.get("/api/v1/account/balance", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


async def test_balance_is_rendered_with_two_decimals(client, fake_ledger):
    r = await client.get("/api/v1/account/balance")
    assert r.status_code == 200
    assert r.json() == {"message": "Account balance fetched successfully", "balance": "123.45"}


async def test_add_money_converts_to_minor_units(client, fake_ledger):
    r = await client.post(
        "/api/v1/account/add-money",
        json={"amount": "10.50"},
        headers={"Idempotency-Key": "topup-1"},
    )
    assert r.status_code == 200
    assert r.json()["balance"] == "123.45"
    name, args, kwargs = fake_ledger.calls[0]
    assert name == "add_money"
    assert args[1] == 1050
    assert kwargs["idempotency_key"] == "topup-1"


@pytest.mark.parametrize("amount", ["abc", "-5", "0", "0.004", None, "NaN"])
async def test_invalid_amount_never_reaches_ledger(client, fake_ledger, amount):
    r = await client.post("/api/v1/account/transfer", json={"to": str(ObjectId()), "amount": amount})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_AMOUNT"
    assert fake_ledger.calls == []


async def test_transfer_to_malformed_recipient_is_404(client, fake_ledger):
    r = await client.post("/api/v1/account/transfer", json={"to": "nobody", "amount": "5"})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "ACCOUNT_NOT_FOUND"
    assert fake_ledger.calls == []


async def test_transfer_body_schema_error_is_422(client, fake_ledger):
    r = await client.post("/api/v1/account/transfer", json={"amount": "5"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_pay_via_qr_accepts_camel_case_and_maps_recipient_error(client, fake_ledger):
    fake_ledger.error = RecipientNotFoundError()
    r = await client.post("/api/v1/account/pay-via-qr", json={"qrData": " 9876543210 ", "amount": 25})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "RECIPIENT_NOT_FOUND"
    name, args, _ = fake_ledger.calls[0]
    assert args[1] == "9876543210"
    assert args[2] == 2500


async def test_insufficient_funds_envelope(client, fake_ledger):
    fake_ledger.error = InsufficientFundsError()
    r = await client.post("/api/v1/account/pay-via-qr", json={"qr_data": "9876543210", "amount": "1"})
    assert r.status_code == 400
    assert r.json()["error"] == {"message": "Insufficient balance", "code": "INSUFFICIENT_FUNDS", "details": {}}


async def test_internal_failure_envelope(client, fake_ledger):
    fake_ledger.error = InternalFailureError()
    r = await client.post("/api/v1/account/add-money", json={"amount": "1"})
    assert r.status_code == 500
    assert r.json()["error"]["code"] == "INTERNAL_ERROR"


async def test_generate_qr(client):
    from app.main import app
    app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=ObjectId(), phone_no="9876543210")
    r = await client.get("/api/v1/account/generate-qr")
    assert r.status_code == 200
    assert r.json()["qr_code"].startswith("data:image/png;base64,")


async def test_smart_suggestion_envelope_without_history(client, fake_ledger):
    r = await client.post("/api/v1/account/smart-suggestion")
    assert r.status_code == 200
    assert r.json() == {"message": "Suggestions fetched successfully", "suggestions": [], "source": "frequency"}
    assert fake_ledger.calls[0][0] == "get_history"


async def test_signup_validation_errors(client):
    from app.main import app
    app.dependency_overrides[get_db_client] = lambda: None
    r = await client.post(
        "/api/v1/user/signup",
        json={
            "username": "not-an-email",
            "firstname": "A",
            "lastname": "B",
            "password": "alllowercase",
            "Phone_No": "12ab",
        },
    )
    assert r.status_code == 422
    body = r.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    fields = {e["loc"][-1] for e in body["error"]["details"]["errors"]}
    assert {"username", "password"} <= fields
    # the submitted password is not echoed back
    assert "alllowercase" not in r.text
