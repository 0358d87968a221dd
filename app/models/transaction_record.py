from datetime import datetime
from typing import Literal, Optional

from beanie import Document, Link, PydanticObjectId
from pydantic import Field
from pymongo import IndexModel

from app.models.account import Account

STATUS_TRANSFER = "Transfer"
STATUS_ADD_MONEY = "Add Money"
STATUS_PAID_VIA_QR = "Paid via QR"

TransactionStatus = Literal["Transfer", "Add Money", "Paid via QR"]


def _link_id(value) -> PydanticObjectId | None:
    if value is None:
        return None
    if isinstance(value, Link):
        return value.ref.id
    return value.id


class TransactionRecord(Document):
    """Append-only ledger entry; written once in the same transaction as the balance change."""
    source: Optional[Link[Account]] = None
    destination: Link[Account]
    amount: int = Field(gt=0)  # minor units
    status: TransactionStatus
    idempotency_key: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "transactions"
        indexes = [
            IndexModel([("source.$id", 1), ("created_at", -1)]),
            IndexModel([("destination.$id", 1), ("created_at", -1)]),
            IndexModel([("source.$id", 1), ("idempotency_key", 1)]),
        ]

    @property
    def source_id(self) -> PydanticObjectId | None:
        return _link_id(self.source)

    @property
    def destination_id(self) -> PydanticObjectId | None:
        return _link_id(self.destination)
