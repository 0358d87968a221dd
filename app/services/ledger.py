"""Wallet ledger: balance changes and their transaction records, committed together.

Every mutating operation runs inside one MongoDB transaction
(`app.db.transactions.run_in_transaction`): the accounts are re-read inside the
transaction, preconditions are checked against that state, the debit is a
guarded `$inc` (filter `balance >= amount`) so a balance can never go
negative, and the TransactionRecord is inserted before commit. A failed
precondition raises its AppError and the transaction is aborted with nothing
written.

Amounts are integer minor units. Callers pass resolved Account documents;
the caller's account always comes from the verified token.
"""

from beanie import PydanticObjectId
from beanie.operators import Or
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo import DESCENDING, ReturnDocument

from app.core.config import get_settings
from app.core.exceptions import (
    AccountNotFoundError,
    ConflictError,
    InsufficientFundsError,
    InvalidAmountError,
    RecipientNotFoundError,
)
from app.core.logging import get_logger
from app.db.transactions import run_in_transaction
from app.models.account import Account
from app.models.transaction_record import (
    STATUS_ADD_MONEY,
    STATUS_PAID_VIA_QR,
    STATUS_TRANSFER,
    TransactionRecord,
)
from app.services.accounts import find_account_for_user, find_user_by_phone

log = get_logger(__name__)


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError("Amount must be a positive number of minor units")


class Ledger:
    def __init__(self, client: AsyncIOMotorClient, attempts: int | None = None):
        self._client = client
        self._attempts = attempts or get_settings().ledger_transaction_attempts

    # Reads

    async def get_balance(self, account: Account) -> int:
        fresh = await Account.get(account.id)
        if fresh is None:
            raise AccountNotFoundError()
        return fresh.balance

    async def get_history(
        self,
        account: Account,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[TransactionRecord]:
        """Records where the account is source or destination, newest first."""
        query = (
            TransactionRecord.find(
                Or(
                    TransactionRecord.source.id == account.id,
                    TransactionRecord.destination.id == account.id,
                )
            )
            .sort(-TransactionRecord.created_at, ("_id", DESCENDING))
            .skip(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return await query.to_list()

    # Mutations

    async def transfer(
        self,
        actor: Account,
        target: Account,
        amount: int,
        idempotency_key: str | None = None,
    ) -> int:
        """Move `amount` from actor to target; return the actor's new balance."""
        _require_positive(amount)

        async def work(session: AsyncIOMotorClientSession) -> int:
            return await self._move(session, actor.id, target.id, amount, STATUS_TRANSFER, idempotency_key)

        balance = await run_in_transaction(self._client, work, operation="transfer", attempts=self._attempts)
        log.info("transfer_committed", source=str(actor.id), destination=str(target.id), amount=amount)
        return balance

    async def add_money(self, actor: Account, amount: int, idempotency_key: str | None = None) -> int:
        """Top up the actor's own account; return the new balance."""
        _require_positive(amount)

        async def work(session: AsyncIOMotorClientSession) -> int:
            return await self._move(session, actor.id, actor.id, amount, STATUS_ADD_MONEY, idempotency_key)

        balance = await run_in_transaction(self._client, work, operation="add_money", attempts=self._attempts)
        log.info("add_money_committed", account=str(actor.id), amount=amount)
        return balance

    async def pay_via_identifier(
        self,
        actor: Account,
        phone_no: str,
        amount: int,
        idempotency_key: str | None = None,
    ) -> int:
        """Resolve the recipient by phone number (QR payload), then transfer as "Paid via QR"."""
        _require_positive(amount)

        async def work(session: AsyncIOMotorClientSession) -> int:
            recipient = await find_user_by_phone(phone_no, session=session)
            if recipient is None:
                raise RecipientNotFoundError()
            target = await find_account_for_user(recipient.id, session=session)
            if target is None:
                raise RecipientNotFoundError("Receiver account not found")
            return await self._move(session, actor.id, target.id, amount, STATUS_PAID_VIA_QR, idempotency_key)

        balance = await run_in_transaction(self._client, work, operation="pay_via_qr", attempts=self._attempts)
        log.info("qr_payment_committed", source=str(actor.id), amount=amount)
        return balance

    async def _move(
        self,
        session: AsyncIOMotorClientSession,
        source_id: PydanticObjectId,
        destination_id: PydanticObjectId,
        amount: int,
        status: str,
        idempotency_key: str | None,
    ) -> int:
        """Debit source (unless topping up), credit destination, record. Returns source balance."""
        source = await Account.get(source_id, session=session)
        if source is None:
            raise AccountNotFoundError()
        if destination_id == source_id:
            destination = source
        else:
            destination = await Account.get(destination_id, session=session)
            if destination is None:
                raise AccountNotFoundError("Recipient account not found")

        if idempotency_key:
            existing = await TransactionRecord.find_one(
                TransactionRecord.source.id == source.id,
                TransactionRecord.idempotency_key == idempotency_key,
                session=session,
            )
            if existing is not None:
                if (
                    existing.status != status
                    or existing.amount != amount
                    or existing.destination_id != destination.id
                ):
                    raise ConflictError(
                        "Idempotency-Key was already used for a different request",
                        details={"idempotency_key": idempotency_key},
                    )
                log.info("ledger_replay", status=status, idempotency_key=idempotency_key)
                return source.balance

        collection = Account.get_motor_collection()
        balance_after = source.balance
        if status != STATUS_ADD_MONEY:
            if source.balance < amount:
                raise InsufficientFundsError()
            debited = await collection.find_one_and_update(
                {"_id": source.id, "balance": {"$gte": amount}},
                {"$inc": {"balance": -amount}},
                session=session,
                return_document=ReturnDocument.AFTER,
            )
            if debited is None:
                raise InsufficientFundsError()
            balance_after = debited["balance"]

        credited = await collection.find_one_and_update(
            {"_id": destination.id},
            {"$inc": {"balance": amount}},
            session=session,
            return_document=ReturnDocument.AFTER,
        )
        if credited is None:
            raise AccountNotFoundError("Recipient account not found")
        if destination.id == source.id:
            balance_after = credited["balance"]

        await TransactionRecord(
            source=source,
            destination=destination,
            amount=amount,
            status=status,
            idempotency_key=idempotency_key,
        ).insert(session=session)
        return balance_after
