"""Availability index over bookings and manual room locks.

All ranges are half-open ``[start, end)``: two ranges overlap when
``a.start < b.end and a.end > b.start``, so a check-out day can be the
next guest's check-in day.
"""

import logging
from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.core.exceptions import InvalidDateRange, NotFoundError, Unauthorized
from akwanda.core.security import Actor
from akwanda.models.booking import TERMINAL_BOOKING_STATUSES, Booking
from akwanda.models.property import Property, Room, RoomClosedDate

logger = logging.getLogger(__name__)


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    CONFLICT = "conflict"


def assert_valid_range(start: date, end: date) -> None:
    if end <= start:
        raise InvalidDateRange(f"End date {end} must be after start date {start}")


class AvailabilityService:
    """Read-side conflict checks plus manual room locks."""

    async def check_availability(
        self,
        db: AsyncSession,
        property_id: UUID,
        room_id: UUID | None,
        start: date,
        end: date,
        exclude_booking_id: UUID | None = None,
    ) -> AvailabilityStatus:
        """Check whether ``[start, end)`` can be booked.

        Without a room the whole property is one unit, so any live booking
        on it conflicts. With a room, bookings of that room and bookings of
        the whole property conflict, as do the room's closed dates.

        Raises:
            InvalidDateRange: If ``end <= start``
        """
        assert_valid_range(start, end)

        query = select(Booking.id).where(
            Booking.property_id == property_id,
            Booking.status.not_in(TERMINAL_BOOKING_STATUSES),
            Booking.check_in < end,
            Booking.check_out > start,
        )
        if room_id is not None:
            query = query.where(or_(Booking.room_id == room_id, Booking.room_id.is_(None)))
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)

        result = await db.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            return AvailabilityStatus.CONFLICT

        if room_id is not None:
            lock_result = await db.execute(
                select(RoomClosedDate.id)
                .where(
                    RoomClosedDate.room_id == room_id,
                    RoomClosedDate.start_date < end,
                    RoomClosedDate.end_date > start,
                )
                .limit(1)
            )
            if lock_result.scalar_one_or_none() is not None:
                return AvailabilityStatus.CONFLICT

        return AvailabilityStatus.AVAILABLE

    async def is_available(
        self,
        db: AsyncSession,
        property_id: UUID,
        room_id: UUID | None,
        start: date,
        end: date,
        exclude_booking_id: UUID | None = None,
    ) -> bool:
        status = await self.check_availability(
            db, property_id, room_id, start, end, exclude_booking_id
        )
        return status == AvailabilityStatus.AVAILABLE

    async def _get_room_for_owner(self, db: AsyncSession, room_id: UUID, actor: Actor) -> Room:
        result = await db.execute(
            select(Room, Property.host_id)
            .join(Property, Property.id == Room.property_id)
            .where(Room.id == room_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Room", str(room_id))
        room, host_id = row
        if not actor.is_admin and actor.user_id != host_id:
            raise Unauthorized("Only the property owner can lock this room")
        return room

    async def lock_room_dates(
        self,
        db: AsyncSession,
        room_id: UUID,
        start: date,
        end: date,
        actor: Actor,
        reason: str | None = None,
    ) -> list[RoomClosedDate]:
        """Close ``[start, end)`` on a room, merging overlapping locks.

        Returns:
            list[RoomClosedDate]: The room's locks after the merge, by start date
        """
        assert_valid_range(start, end)
        room = await self._get_room_for_owner(db, room_id, actor)

        result = await db.execute(
            select(RoomClosedDate).where(
                RoomClosedDate.room_id == room.id,
                RoomClosedDate.start_date < end,
                RoomClosedDate.end_date > start,
            )
        )
        merged_start, merged_end = start, end
        merged_reason = reason
        for existing in result.scalars().all():
            merged_start = min(merged_start, existing.start_date)
            merged_end = max(merged_end, existing.end_date)
            merged_reason = merged_reason or existing.reason
            await db.delete(existing)

        db.add(
            RoomClosedDate(
                room_id=room.id,
                start_date=merged_start,
                end_date=merged_end,
                reason=merged_reason or "Locked",
            )
        )
        await db.flush()
        logger.info("Room %s locked %s → %s", room.id, merged_start, merged_end)
        return await self.list_room_locks(db, room.id)

    async def unlock_room_dates(
        self,
        db: AsyncSession,
        room_id: UUID,
        start: date,
        end: date,
        actor: Actor,
    ) -> list[RoomClosedDate]:
        """Remove the lock that exactly matches ``[start, end)``."""
        assert_valid_range(start, end)
        room = await self._get_room_for_owner(db, room_id, actor)

        result = await db.execute(
            select(RoomClosedDate).where(
                and_(
                    RoomClosedDate.room_id == room.id,
                    RoomClosedDate.start_date == start,
                    RoomClosedDate.end_date == end,
                )
            )
        )
        for lock in result.scalars().all():
            await db.delete(lock)
        await db.flush()
        logger.info("Room %s unlocked %s → %s", room.id, start, end)
        return await self.list_room_locks(db, room.id)

    async def list_room_locks(self, db: AsyncSession, room_id: UUID) -> list[RoomClosedDate]:
        result = await db.execute(
            select(RoomClosedDate)
            .where(RoomClosedDate.room_id == room_id)
            .order_by(RoomClosedDate.start_date)
        )
        return list(result.scalars().all())


# Singleton instance
availability_service = AvailabilityService()
