import random
import re
from datetime import datetime

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo.errors import DuplicateKeyError

from app.core.config import get_settings
from app.core.exceptions import AccountNotFoundError, BadRequestError, ConflictError, UnauthorizedError
from app.core.logging import get_logger
from app.core.security import create_access_token, hash_password, verify_password
from app.db.transactions import run_in_transaction
from app.models.account import Account
from app.models.user import User
from app.services.accounts import find_account_for_user

log = get_logger(__name__)

SEARCH_LIMIT = 50


def seed_balance() -> int:
    """Random starting balance in minor units: whole rupees in the configured range, x100."""
    s = get_settings()
    return random.randint(s.signup_balance_min_units, s.signup_balance_max_units) * 100


async def signup(
    client: AsyncIOMotorClient,
    username: str,
    first_name: str,
    last_name: str,
    password: str,
    phone_no: str,
) -> tuple[User, Account]:
    """Create the user and their seeded account in one transaction."""
    username = username.strip().lower()
    if await User.find_one(User.username == username):
        raise ConflictError("Username/email already exists")
    if await User.find_one(User.phone_no == phone_no):
        raise ConflictError("Phone number already registered")
    password_hash = hash_password(password)
    balance = seed_balance()

    async def work(session: AsyncIOMotorClientSession) -> tuple[User, Account]:
        user = User(
            username=username,
            first_name=first_name,
            last_name=last_name,
            phone_no=phone_no,
            password_hash=password_hash,
        )
        try:
            await user.insert(session=session)
        except DuplicateKeyError as e:
            # lost a race with a concurrent signup
            raise ConflictError("Username or phone number already registered") from e
        account = Account(user=user, balance=balance)
        await account.insert(session=session)
        return user, account

    user, account = await run_in_transaction(
        client, work, operation="signup", attempts=get_settings().ledger_transaction_attempts
    )
    log.info("user_created", user_id=str(user.id), account_id=str(account.id), balance=balance)
    return user, account


async def signin(username: str, password: str) -> str:
    """Return a bearer token for valid credentials."""
    user = await User.find_one(User.username == username.strip().lower())
    if not user:
        raise UnauthorizedError("Invalid username or Please Signup")
    if not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid password")
    log.info("user_login", user_id=str(user.id))
    return create_access_token(str(user.id))


async def profile(user: User) -> dict:
    account = await find_account_for_user(user.id)
    if account is None:
        raise AccountNotFoundError()
    return {**user.public_dict(), "account_id": str(account.id), "created_at": user.created_at.isoformat()}


async def update_profile(
    user: User,
    first_name: str | None = None,
    last_name: str | None = None,
    phone_no: str | None = None,
    password: str | None = None,
) -> list[str]:
    """Apply the given fields; return their names."""
    updated = []
    if first_name:
        user.first_name = first_name
        updated.append("first_name")
    if last_name:
        user.last_name = last_name
        updated.append("last_name")
    if phone_no and phone_no != user.phone_no:
        other = await User.find_one(User.phone_no == phone_no)
        if other and other.id != user.id:
            raise ConflictError("Phone number already registered")
        user.phone_no = phone_no
        updated.append("phone_no")
    if password:
        user.password_hash = hash_password(password)
        updated.append("password")
    if not updated:
        raise BadRequestError("No valid fields to update")
    user.updated_at = datetime.utcnow()
    try:
        await user.save()
    except DuplicateKeyError as e:
        raise ConflictError("Phone number already registered") from e
    log.info("profile_updated", user_id=str(user.id), fields=updated)
    return updated


async def search_users(term: str | None, exclude_id=None) -> list[User]:
    """Case-insensitive substring match on username, names and phone number."""
    pattern = {"$regex": re.escape((term or "").strip()), "$options": "i"}
    query = {
        "$or": [
            {"username": pattern},
            {"first_name": pattern},
            {"last_name": pattern},
            {"phone_no": pattern},
        ]
    }
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    return await User.find(query).sort("username").limit(SEARCH_LIMIT).to_list()
