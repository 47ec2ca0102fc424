import os
from typing import Any, Dict, List

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import akwanda.models  # noqa: F401
from akwanda.core.idempotency import reset_replay_store
from akwanda.database import Base
from akwanda.services.notification_service import notification_service


class RecordingSink:
    """Notification sink that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    async def send(self, kind: str, recipient: str, payload: Dict[str, Any]) -> None:
        self.events.append({"kind": kind, "recipient": recipient, "payload": payload})

    def kinds(self) -> List[str]:
        return [event["kind"] for event in self.events]

    def sent_to(self, recipient: Any, kind: str | None = None) -> List[Dict[str, Any]]:
        return [
            event
            for event in self.events
            if event["recipient"] == str(recipient) and (kind is None or event["kind"] == kind)
        ]


@pytest.fixture()
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
async def db(engine):
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture()
def sink():
    recording = RecordingSink()
    notification_service.use_sink(recording)
    yield recording
    notification_service.use_sink(None)


@pytest.fixture(autouse=True)
def _clean_replay_store():
    reset_replay_store()
    yield
    reset_replay_store()
