"""Transaction history presentation: resolve accounts to their owners."""

from beanie import PydanticObjectId
from beanie.operators import In

from app.core.money import format_minor_units
from app.models.account import Account
from app.models.transaction_record import TransactionRecord
from app.models.user import User


async def resolve_parties(records: list[TransactionRecord]) -> dict[PydanticObjectId, dict]:
    """Map every account id seen in `records` to {account_id, user_id, username, first_name, last_name}."""
    account_ids = set()
    for r in records:
        if r.source_id is not None:
            account_ids.add(r.source_id)
        if r.destination_id is not None:
            account_ids.add(r.destination_id)
    if not account_ids:
        return {}
    accounts = await Account.find(In(Account.id, list(account_ids))).to_list()
    user_ids = {a.user.ref.id for a in accounts}
    users = {u.id: u for u in await User.find(In(User.id, list(user_ids))).to_list()}
    parties = {}
    for a in accounts:
        u = users.get(a.user.ref.id)
        parties[a.id] = {
            "account_id": str(a.id),
            "user_id": str(u.id) if u else None,
            "username": u.username if u else None,
            "first_name": u.first_name if u else None,
            "last_name": u.last_name if u else None,
        }
    return parties


def serialize_record(record: TransactionRecord, parties: dict[PydanticObjectId, dict]) -> dict:
    return {
        "id": str(record.id),
        "from": parties.get(record.source_id),
        "to": parties.get(record.destination_id),
        "amount": format_minor_units(record.amount),
        "status": record.status,
        "timestamp": record.created_at.isoformat(),
    }
