from datetime import datetime

from beanie import Document, Link
from pydantic import Field
from pymongo import IndexModel

from app.models.user import User


class Account(Document):
    """Wallet balance for one user. Only the ledger service writes balance."""
    user: Link[User]
    balance: int = Field(default=0, ge=0)  # minor units (paise)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "accounts"
        indexes = [IndexModel([("user.$id", 1)], unique=True)]
