"""Account and user lookups. Absence is returned as None, never raised."""

from beanie import PydanticObjectId
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClientSession

from app.models.account import Account
from app.models.user import User


def parse_object_id(value: str | None) -> PydanticObjectId | None:
    if not value or not ObjectId.is_valid(value):
        return None
    return PydanticObjectId(value)


async def get_user(user_id: str | PydanticObjectId | None) -> User | None:
    oid = user_id if isinstance(user_id, ObjectId) else parse_object_id(user_id)
    if oid is None:
        return None
    return await User.get(oid)


async def find_user_by_phone(
    phone_no: str,
    session: AsyncIOMotorClientSession | None = None,
) -> User | None:
    phone_no = (phone_no or "").strip()
    if not phone_no:
        return None
    return await User.find_one(User.phone_no == phone_no, session=session)


async def find_account_for_user(
    user_id: PydanticObjectId,
    session: AsyncIOMotorClientSession | None = None,
) -> Account | None:
    return await Account.find_one(Account.user.id == user_id, session=session)


async def find_account_for_user_ref(user_ref: str | None) -> Account | None:
    """Resolve a client-supplied user id string to that user's account."""
    oid = parse_object_id(user_ref)
    if oid is None:
        return None
    return await find_account_for_user(oid)
