"""Factory helpers for building rows directly in the test database."""

import os
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List
from uuid import UUID

from akwanda.core.security import Actor
from akwanda.models.booking import Booking
from akwanda.models.property import Promotion, Property, Room
from akwanda.models.user import HostFine, User, WorkerPrivilege
from akwanda.services.notification_service import notification_service
from akwanda.utils.dates import utcnow

TODAY = date(2026, 3, 2)


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, role=user.role)


async def make_user(db, role: str = "guest", email: str | None = None, **fields) -> User:
    user = User(
        email=email or f"{role}-{os.urandom(4).hex()}@akwanda.test",
        first_name=role.title(),
        role=role,
        is_blocked=False,
        limited_access=False,
        total_fines_due=0,
        **fields,
    )
    db.add(user)
    await db.flush()
    return user


async def make_property(db, host: User, price_per_night: int = 90_000, **fields) -> Property:
    values = {
        "title": "Lake Kivu Villa",
        "city": "Rubavu",
        "currency": "RWF",
        "max_adults": 4,
        "max_children": 2,
        "max_infants": 1,
        "group_discount_enabled": False,
        "group_discount_percent": Decimal("0"),
        "commission_rate": Decimal("10"),
        "commission_tier": "premium",
        "is_active": True,
    }
    values.update(fields)
    prop = Property(host_id=host.id, price_per_night=price_per_night, **values)
    db.add(prop)
    await db.flush()
    return prop


async def make_room(db, prop: Property, price_per_night: int = 50_000, **fields) -> Room:
    values = {"room_number": "101", "max_adults": 2, "max_children": 1, "max_infants": 1}
    values.update(fields)
    room = Room(property_id=prop.id, price_per_night=price_per_night, **values)
    db.add(room)
    await db.flush()
    return room


async def make_promotion(db, prop: Property, kind: str, percent: int, **fields) -> Promotion:
    promotion = Promotion(
        property_id=prop.id,
        kind=kind,
        discount_percent=Decimal(percent),
        active=True,
        **fields,
    )
    db.add(promotion)
    await db.flush()
    return promotion


async def make_worker_privilege(
    db, host: User, worker: User, manage: bool = True, cancel: bool = False
) -> WorkerPrivilege:
    privilege = WorkerPrivilege(
        host_id=host.id,
        worker_id=worker.id,
        can_manage_bookings=manage,
        can_cancel_bookings=cancel,
    )
    db.add(privilege)
    await db.flush()
    return privilege


_code_counter = iter(range(100_000, 999_999))


async def make_commission_booking(
    db,
    prop: Property,
    guest: User,
    commission_amount: int,
    check_in: date = date(2026, 2, 10),
    created_at: datetime | None = None,
    status: str = "confirmed",
    commission_paid: bool = False,
) -> Booking:
    """A paid booking that owes ``commission_amount`` to the platform."""
    amount_before_tax = commission_amount * 10
    booking = Booking(
        confirmation_code=f"AKW-T{next(_code_counter)}",
        property_id=prop.id,
        guest_id=guest.id,
        host_id=prop.host_id,
        created_by=guest.id,
        check_in=check_in,
        check_out=check_in + timedelta(days=2),
        adults=1,
        children=0,
        infants=0,
        nightly_rate=amount_before_tax // 2,
        nights=2,
        base_price=amount_before_tax,
        amount_before_tax=amount_before_tax,
        tax_rate=Decimal("3"),
        tax_amount=0,
        total_amount=amount_before_tax,
        commission_rate=Decimal("10"),
        commission_amount=commission_amount,
        commission_paid=commission_paid,
        payment_status="paid",
        amount_paid=amount_before_tax,
        status=status,
        created_at=created_at or utcnow(),
    )
    db.add(booking)
    await db.flush()
    return booking


async def make_fine(
    db,
    host: User,
    amount: int,
    due_date: date | None = None,
    created_at: datetime | None = None,
) -> HostFine:
    fine = HostFine(
        user_id=host.id,
        reason="Listing rules violation",
        amount=amount,
        due_date=due_date,
        paid=False,
        penalty_applied=False,
        commission_applied=False,
        created_at=created_at or utcnow(),
    )
    db.add(fine)
    host.total_fines_due = (host.total_fines_due or 0) + amount
    await db.flush()
    return fine


def ids(rows) -> List[UUID]:
    return [row.id for row in rows]


async def commit(db) -> int:
    """Finish the transaction like a request does; returns notifications sent."""
    await db.commit()
    return await notification_service.dispatch(db)
