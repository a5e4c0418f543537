"""
Pytest configuration for the application
"""
import datetime as dt
import os
from typing import AsyncGenerator, Dict, Optional
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.pool import StaticPool

from main import create_application
from src.core.config import settings
from src.db.base import Base
from src.db.models import (
    KnowledgeBaseDocument,
    Message,
    Tenant,
    UsageRecord,
    WhatsAppConnection,
)
from src.db.session import get_db
from src.services import limits as limits_service


# Set test environment and pin day boundaries to UTC
os.environ["ENV"] = "test"
settings.ENV = "test"
settings.usage.timezone = "UTC"

TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeRedis:
    """Minimal async Redis stub for rate limiting tests."""

    def __init__(self) -> None:
        self.store: Dict[str, int] = {}
        self.ttls: Dict[str, int] = {}

    async def incr(self, key: str) -> int:
        current = self.store.get(key, 0) + 1
        self.store[key] = current
        return current

    async def expire(self, key: str, seconds: int) -> None:
        self.ttls[key] = seconds

    async def aclose(self) -> None:
        return None


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """Patch the limits module to use an in-memory Redis stub."""

    fake = FakeRedis()
    monkeypatch.setattr(limits_service, "_redis_client", fake, raising=False)
    yield fake
    monkeypatch.setattr(limits_service, "_redis_client", None, raising=False)


@pytest_asyncio.fixture
async def test_db_engine():
    """
    Create an in-memory database engine with every table.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_app() -> AsyncGenerator[FastAPI, None]:
    """
    Create a FastAPI test application.
    """
    app = create_application()
    async with LifespanManager(app):
        yield app


@pytest_asyncio.fixture
async def test_db(test_app: FastAPI, test_db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a database session shared by the test and the application.
    """
    test_session_factory = async_sessionmaker(test_db_engine, expire_on_commit=False)

    async with test_session_factory() as session:

        async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        test_app.dependency_overrides[get_db] = _override_get_db

        try:
            yield session
        finally:
            test_app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Create an async HTTP client for testing.
    """
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as client:
        yield client


class Seeder:
    """Inserts activity rows for a test and commits them."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def tenant(self, plan: str = "free", is_active: bool = True) -> Tenant:
        suffix = uuid4().hex[:8]
        return await self._save(
            Tenant(name=f"Tenant {suffix}", slug=f"tenant-{suffix}", plan=plan, is_active=is_active)
        )

    async def connection(
        self, tenant: Tenant, status: str = "connected"
    ) -> WhatsAppConnection:
        return await self._save(
            WhatsAppConnection(
                tenant_id=tenant.id,
                phone_number=f"+1555{uuid4().int % 10_000_000:07d}",
                connection_status=status,
            )
        )

    async def message(
        self,
        tenant: Tenant,
        connection: WhatsAppConnection,
        *,
        direction: str,
        created_at: dt.datetime,
        is_bot_response: bool = False,
    ) -> Message:
        return await self._save(
            Message(
                tenant_id=tenant.id,
                whatsapp_connection_id=connection.id,
                message_id=uuid4().hex,
                sender_phone=connection.phone_number,
                content="hello",
                direction=direction,
                is_bot_response=is_bot_response,
                created_at=created_at,
            )
        )

    async def document(
        self,
        tenant: Tenant,
        *,
        file_size: Optional[int] = None,
        is_processed: bool = False,
        updated_at: Optional[dt.datetime] = None,
    ) -> KnowledgeBaseDocument:
        document = KnowledgeBaseDocument(
            tenant_id=tenant.id,
            title="FAQ",
            content="Opening hours are 9 to 5.",
            file_size=file_size,
            is_processed=is_processed,
        )
        if updated_at is not None:
            document.updated_at = updated_at
        return await self._save(document)

    async def usage_record(
        self,
        tenant: Tenant,
        day: dt.date,
        *,
        sent: int = 0,
        received: int = 0,
        ai: int = 0,
    ) -> UsageRecord:
        return await self._save(
            UsageRecord(
                tenant_id=tenant.id,
                date=day,
                messages_sent=sent,
                messages_received=received,
                ai_requests=ai,
            )
        )


@pytest.fixture
def seed(test_db: AsyncSession) -> Seeder:
    return Seeder(test_db)
