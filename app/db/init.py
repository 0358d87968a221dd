import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.config import get_settings
from app.models.account import Account
from app.models.transaction_record import TransactionRecord
from app.models.user import User

DOCUMENT_MODELS = [
    User,
    Account,
    TransactionRecord,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


def create_client(uri: str | None = None, **kwargs) -> AsyncIOMotorClient:
    uri = uri or get_settings().mongodb_uri
    # Atlas in Docker: tlsCAFile + tlsDisableOCSPEndpointCheck avoid TLSV1_ALERT_INTERNAL_ERROR
    if _use_tls(uri):
        kwargs.setdefault("tlsCAFile", certifi.where())
        kwargs.setdefault("tlsDisableOCSPEndpointCheck", True)
    return AsyncIOMotorClient(uri, **kwargs)


async def init_db(client: AsyncIOMotorClient | None = None, db_name: str | None = None) -> AsyncIOMotorClient:
    """Bind the document models to a database and return the owning client.

    The caller keeps the client for the lifetime of the process; the ledger
    needs it to open sessions.
    """
    client = client or create_client()
    database = client[db_name or get_settings().mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    return client
