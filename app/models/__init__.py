from app.models.user import User
from app.models.account import Account
from app.models.transaction_record import TransactionRecord

__all__ = [
    "User",
    "Account",
    "TransactionRecord",
]
