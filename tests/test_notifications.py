from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

import akwanda.database as database
from akwanda.models.booking import Booking
from akwanda.schemas.booking import BookingCreate
from akwanda.services.booking_service import booking_service
from akwanda.services.notification_service import notification_service
from tests.factories import TODAY, actor_for, make_property, make_user


@pytest.fixture()
def session_context(engine, monkeypatch):
    monkeypatch.setattr(
        database, "async_session_maker", async_sessionmaker(engine, expire_on_commit=False)
    )
    return database.get_db_context


async def _listing(db):
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    await db.commit()
    request = BookingCreate(
        property_id=prop.id,
        check_in=TODAY + timedelta(days=10),
        check_out=TODAY + timedelta(days=12),
    )
    return host, guest, request


async def _booking_count(db) -> int:
    result = await db.execute(select(func.count()).select_from(Booking))
    return result.scalar_one()


async def test_events_go_out_after_commit(db, sink, session_context):
    host, guest, request = await _listing(db)

    async with session_context() as session:
        await booking_service.create_booking(session, request, actor_for(guest), today=TODAY)
        assert sink.events == []
        assert len(notification_service.pending(session)) == 2

    assert len(sink.sent_to(host.id, "booking_created")) == 1
    assert len(sink.sent_to(guest.id, "booking_created")) == 1
    assert await _booking_count(db) == 1


async def test_rolled_back_transaction_emits_nothing(db, sink, session_context):
    _, guest, request = await _listing(db)

    with pytest.raises(RuntimeError):
        async with session_context() as session:
            await booking_service.create_booking(session, request, actor_for(guest), today=TODAY)
            raise RuntimeError("payment collaborator unreachable")

    assert sink.events == []
    assert notification_service.pending(session) == []
    assert await _booking_count(db) == 0


async def test_discard_drops_queued_events(db, sink):
    notification_service.queue(db, notification_service.DUES_REMINDER, "host-1", {"outstanding": 5})

    assert notification_service.discard(db) == 1
    assert await notification_service.dispatch(db) == 0
    assert sink.events == []
