import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Use test DB; transactions need a replica set (e.g. `mongod --replSet rs0`)
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/?replicaSet=rs0")
os.environ.setdefault("MONGODB_DB_NAME", "paywallet_test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-min-32-characters-long")
# Never call the real model from tests
os.environ["GEMINI_API_KEY"] = ""


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """App client without startup: no database. Tests override dependencies as needed."""
    from app.main import app
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def mongo():
    """Motor client bound to a clean test database; skips when no replica set is reachable."""
    from pymongo.errors import PyMongoError

    from app.db.init import DOCUMENT_MODELS, create_client, init_db

    mongo_client = create_client(os.environ["MONGODB_URI"], serverSelectionTimeoutMS=1500)
    try:
        hello = await mongo_client.admin.command("hello")
    except PyMongoError as e:
        mongo_client.close()
        pytest.skip(f"MongoDB not reachable: {e}")
    if not hello.get("setName"):
        mongo_client.close()
        pytest.skip("MongoDB is not a replica set; transactions unavailable")
    await init_db(mongo_client, os.environ["MONGODB_DB_NAME"])
    for model in DOCUMENT_MODELS:
        await model.delete_all()
    yield mongo_client
    mongo_client.close()


@pytest_asyncio.fixture
async def api(mongo) -> AsyncGenerator[AsyncClient, None]:
    """App client wired to the test database."""
    from app.main import app
    app.state.mongo_client = mongo
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
