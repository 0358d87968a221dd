from fastapi import APIRouter, Depends, Query
from pydantic import AliasChoices, BaseModel, Field

from app.core.exceptions import AccountNotFoundError
from app.core.money import format_minor_units, to_minor_units
from app.core.pagination import paginate
from app.deps import get_current_account, get_current_user, get_ledger, idempotency_key
from app.models.account import Account
from app.models.user import User
from app.services import history as history_service
from app.services import qr as qr_service
from app.services import suggestions as suggestions_service
from app.services.accounts import find_account_for_user_ref
from app.services.ledger import Ledger

router = APIRouter()

# Decimal amount as sent by the client ("10.50" or 10.5); parsed by to_minor_units
AmountIn = str | int | float | None

SUGGESTION_HISTORY_LIMIT = 200


class TransferRequest(BaseModel):
    to: str = Field(min_length=1, description="Recipient user id")
    amount: AmountIn = None


class AddMoneyRequest(BaseModel):
    amount: AmountIn = None


class PayViaQrRequest(BaseModel):
    qr_data: str = Field(min_length=1, max_length=64, validation_alias=AliasChoices("qr_data", "qrData"))
    amount: AmountIn = None


@router.get("/balance")
async def balance(account: Account = Depends(get_current_account), ledger: Ledger = Depends(get_ledger)):
    minor = await ledger.get_balance(account)
    return {"message": "Account balance fetched successfully", "balance": format_minor_units(minor)}


@router.post("/transfer")
async def transfer(
    body: TransferRequest,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
    key: str | None = Depends(idempotency_key),
):
    """Send money to another user's account."""
    amount = to_minor_units(body.amount)
    target = await find_account_for_user_ref(body.to)
    if target is None:
        raise AccountNotFoundError("Recipient account not found")
    minor = await ledger.transfer(account, target, amount, idempotency_key=key)
    return {"message": "Transfer successful", "balance": format_minor_units(minor)}


@router.post("/add-money")
async def add_money(
    body: AddMoneyRequest,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
    key: str | None = Depends(idempotency_key),
):
    amount = to_minor_units(body.amount)
    minor = await ledger.add_money(account, amount, idempotency_key=key)
    return {"message": "Money added successfully", "balance": format_minor_units(minor)}


@router.post("/pay-via-qr")
async def pay_via_qr(
    body: PayViaQrRequest,
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
    key: str | None = Depends(idempotency_key),
):
    """Pay the user whose phone number was decoded from their QR code."""
    amount = to_minor_units(body.amount)
    minor = await ledger.pay_via_identifier(account, body.qr_data.strip(), amount, idempotency_key=key)
    return {"message": "Payment successful", "balance": format_minor_units(minor)}


@router.get("/transaction-history")
async def transaction_history(
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
    limit: int | None = Query(None, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Transactions in and out of my account, newest first. All of them unless limit is given."""
    limit, offset = paginate(limit, offset)
    records = await ledger.get_history(account, limit=limit, offset=offset)
    parties = await history_service.resolve_parties(records)
    return {
        "message": "Transaction history fetched successfully",
        "transactions": [history_service.serialize_record(r, parties) for r in records],
        "limit": limit,
        "offset": offset,
    }


@router.get("/generate-qr")
async def generate_qr(user: User = Depends(get_current_user)):
    return {"message": "QR code generated successfully", "qr_code": qr_service.qr_for_user(user)}


@router.post("/smart-suggestion")
async def smart_suggestion(
    account: Account = Depends(get_current_account),
    ledger: Ledger = Depends(get_ledger),
):
    """Likely next recipients and amounts; AI when available, frequency analysis otherwise."""
    records = await ledger.get_history(account, limit=SUGGESTION_HISTORY_LIMIT)
    parties = await history_service.resolve_parties(records)
    history = [history_service.serialize_record(r, parties) for r in records]
    suggestions, source = await suggestions_service.suggest(account.id, records, parties, history)
    return {"message": "Suggestions fetched successfully", "suggestions": suggestions, "source": source}
