"""Atomic unit of work: one client session holding one multi-document transaction."""

import asyncio
from typing import Awaitable, Callable, TypeVar

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo.errors import PyMongoError

from app.core.exceptions import InternalFailureError
from app.core.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

TRANSIENT_LABEL = "TransientTransactionError"
RETRY_BACKOFF_SECONDS = 0.05


async def run_in_transaction(
    client: AsyncIOMotorClient,
    work: Callable[[AsyncIOMotorClientSession], Awaitable[T]],
    *,
    operation: str,
    attempts: int = 1,
) -> T:
    """
    Run `work(session)` inside a transaction and commit it.

    - An AppError (or any non-driver exception) raised by `work` aborts the
      transaction and propagates unchanged.
    - A driver error labelled TransientTransactionError raised by `work`
      (write conflict before commit, nothing applied) re-runs `work` from the
      start, up to `attempts` times in total.
    - Any other driver error, and every commit error, aborts and raises
      InternalFailureError. Commits are never retried.
    The session is ended on every path.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            async with await client.start_session() as session:
                session.start_transaction()
                try:
                    result = await work(session)
                except PyMongoError as exc:
                    await session.abort_transaction()
                    if exc.has_error_label(TRANSIENT_LABEL) and attempt < attempts:
                        log.warning("transaction_conflict_retry", operation=operation, attempt=attempt)
                        await asyncio.sleep(RETRY_BACKOFF_SECONDS * attempt)
                        continue
                    log.error("transaction_failed", operation=operation, attempt=attempt, error=str(exc))
                    raise InternalFailureError() from exc
                except Exception:
                    await session.abort_transaction()
                    raise
                try:
                    await session.commit_transaction()
                except PyMongoError as exc:
                    log.error("transaction_commit_failed", operation=operation, error=str(exc))
                    raise InternalFailureError() from exc
                return result
        except PyMongoError as exc:
            # session could not be started (server unreachable, no replica set, ...)
            log.error("transaction_session_failed", operation=operation, error=str(exc))
            raise InternalFailureError() from exc
