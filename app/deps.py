"""Shared FastAPI dependencies."""

from fastapi import Depends, Header, Request
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.exceptions import AccountNotFoundError, UnauthorizedError
from app.core.logging import bind_user
from app.core.security import decode_access_token, parse_bearer
from app.models.account import Account
from app.models.user import User
from app.services.accounts import find_account_for_user, get_user
from app.services.ledger import Ledger


async def get_current_user(request: Request) -> User:
    """Dependency: verify the bearer token and return its User."""
    token = parse_bearer(request.headers.get("Authorization"))
    if not token:
        raise UnauthorizedError("Unauthorized access, please login/token not found")
    payload = decode_access_token(token)
    if not payload:
        raise UnauthorizedError("Unauthorized access, token verification failed")
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Unauthorized access, invalid token")
    user = await get_user(user_id)
    if not user:
        raise UnauthorizedError("Unauthorized access, user not found")
    bind_user(str(user.id))
    return user


async def get_current_account(user: User = Depends(get_current_user)) -> Account:
    """Dependency: the caller's own account. The actor is never taken from the request body."""
    account = await find_account_for_user(user.id)
    if not account:
        raise AccountNotFoundError()
    return account


def get_db_client(request: Request) -> AsyncIOMotorClient:
    return request.app.state.mongo_client


def get_ledger(client: AsyncIOMotorClient = Depends(get_db_client)) -> Ledger:
    return Ledger(client)


def idempotency_key(key: str | None = Header(default=None, alias="Idempotency-Key", max_length=128)) -> str | None:
    """Optional Idempotency-Key header; blank means absent."""
    if key is None or not key.strip():
        return None
    return key.strip()
