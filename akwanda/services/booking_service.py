"""Booking admission and lifecycle.

Create and modify run inside the caller's transaction while holding a row
lock on the property, so the availability check and the insert cannot
interleave with another request for the same property. PostgreSQL also
carries exclusion constraints on live bookings; a violation surfaces as
``DateRangeConflict``.
"""

import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.config import settings
from akwanda.core.exceptions import (
    DateRangeConflict,
    HostBlocked,
    InvalidAmount,
    InvalidDateRange,
    InvalidStateTransition,
    NotFoundError,
    Unauthorized,
    ValidationError,
)
from akwanda.core.permissions import BookingAction, authorize_booking_action
from akwanda.core.security import Actor
from akwanda.domain.access_state import auto_unblock_if_expired
from akwanda.domain.booking_state import assert_booking_transition, is_terminal
from akwanda.models.booking import Booking, BookingAddOn
from akwanda.models.property import Property, Room
from akwanda.models.user import User
from akwanda.schemas.booking import BookingCreate, BookingModify, BookingQuoteRequest, PaymentConfirmedEvent
from akwanda.services.availability_service import availability_service
from akwanda.services.notification_service import notification_service
from akwanda.services.pricing_service import AddOnLine, PriceBreakdown, pricing_service
from akwanda.utils.booking_number import generate_confirmation_code
from akwanda.utils.dates import local_today, utcnow

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINTS = ("bookings_no_overlap_room", "bookings_no_overlap_property")


def _is_overlap_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(name in message for name in OVERLAP_CONSTRAINTS)


def _apply_breakdown(booking: Booking, breakdown: PriceBreakdown) -> None:
    booking.nightly_rate = breakdown.nightly_rate
    booking.nights = breakdown.nights
    booking.base_price = breakdown.base_price
    booking.promotion_discount_percent = breakdown.promotion_discount_percent
    booking.promotion_discount_amount = breakdown.promotion_discount_amount
    booking.group_discount_amount = breakdown.group_discount_amount
    booking.amount_before_tax = breakdown.amount_before_tax
    booking.tax_rate = breakdown.tax_rate
    booking.tax_amount = breakdown.tax_amount
    booking.add_ons_total = breakdown.add_ons_total
    booking.total_amount = breakdown.total_amount
    booking.commission_rate = breakdown.commission_rate
    booking.commission_amount = breakdown.commission_amount


def _booking_payload(booking: Booking) -> dict:
    return {
        "booking_id": booking.id,
        "confirmation_code": booking.confirmation_code,
        "property_id": booking.property_id,
        "check_in": booking.check_in,
        "check_out": booking.check_out,
        "total_amount": booking.total_amount,
        "status": booking.status,
    }


def _queue_confirmation(db: AsyncSession, booking: Booking, payload: dict) -> None:
    notification_service.queue(db, notification_service.BOOKING_CONFIRMED, booking.guest_id, payload)
    notification_service.queue(db, notification_service.BOOKING_CONFIRMED, booking.host_id, payload)
    if booking.commission_amount > 0:
        notification_service.queue(
            db,
            notification_service.COMMISSION_DUE,
            booking.host_id,
            {**payload, "commission_amount": booking.commission_amount},
        )


class BookingService:
    """Service for admitting bookings and moving them through their lifecycle."""

    async def _get_property(
        self, db: AsyncSession, property_id: UUID, for_update: bool = False
    ) -> Property:
        query = select(Property).where(Property.id == property_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        prop = result.scalar_one_or_none()
        if prop is None:
            raise NotFoundError("Property", str(property_id))
        return prop

    async def _get_room(self, db: AsyncSession, prop: Property, room_id: UUID | None) -> Room | None:
        if room_id is None:
            return None
        result = await db.execute(
            select(Room).where(Room.id == room_id, Room.property_id == prop.id)
        )
        room = result.scalar_one_or_none()
        if room is None:
            raise NotFoundError("Room", str(room_id))
        return room

    async def get_booking(
        self, db: AsyncSession, booking_id: UUID, for_update: bool = False
    ) -> Booking:
        query = select(Booking).where(Booking.id == booking_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_booking_for_actor(
        self, db: AsyncSession, booking_id: UUID, actor: Actor
    ) -> Booking:
        booking = await self.get_booking(db, booking_id)
        await authorize_booking_action(
            db, actor, BookingAction.VIEW, booking.host_id, booking.guest_id
        )
        return booking

    async def _assert_host_accepts_bookings(
        self, db: AsyncSession, host_id: UUID, now: datetime
    ) -> None:
        result = await db.execute(select(User).where(User.id == host_id))
        host = result.scalar_one_or_none()
        if host is None:
            raise NotFoundError("Host", str(host_id))
        if auto_unblock_if_expired(host, now):
            logger.info("Host %s block expired, access restored", host.id)
        if host.is_blocked:
            raise HostBlocked()

    async def quote(self, db: AsyncSession, request: BookingQuoteRequest) -> tuple[bool, PriceBreakdown | None]:
        """Price a stay and report whether its dates are free."""
        if request.check_out <= request.check_in:
            raise InvalidDateRange()
        prop = await self._get_property(db, request.property_id)
        room = await self._get_room(db, prop, request.room_id)

        available = await availability_service.is_available(
            db, prop.id, request.room_id, request.check_in, request.check_out
        )
        if not available:
            return False, None

        breakdown = await pricing_service.price_stay(
            db,
            prop,
            room,
            request.check_in,
            request.check_out,
            adults=request.adults,
            children=request.children,
            infants=request.infants,
            coupon_code=request.coupon_code,
            is_group_booking=request.is_group_booking,
            group_size=request.group_size,
            negotiated_total=request.negotiated_total,
            add_ons=[AddOnLine(a.name, a.amount) for a in request.add_ons],
        )
        return True, breakdown

    async def create_booking(
        self,
        db: AsyncSession,
        request: BookingCreate,
        actor: Actor,
        today: date | None = None,
    ) -> Booking:
        """Admit a new booking.

        Args:
            db: Database session (the caller owns the transaction)
            request: Booking request
            actor: Caller
            today: Pricing date, defaults to the local date

        Returns:
            Booking: Persisted booking, ``pending`` or (direct cash paid) ``confirmed``

        Raises:
            InvalidDateRange, CapacityExceeded, Unauthorized, HostBlocked,
            DateRangeConflict, NotFoundError
        """
        if request.check_out <= request.check_in:
            raise InvalidDateRange()

        # Serializes admission per property
        prop = await self._get_property(db, request.property_id, for_update=True)
        if not prop.is_active:
            raise NotFoundError("Property", str(prop.id))
        room = await self._get_room(db, prop, request.room_id)

        direct_fields = request.negotiated_total is not None or bool(request.add_ons)
        if request.is_direct:
            await authorize_booking_action(db, actor, BookingAction.CREATE_DIRECT, prop.host_id)
            if request.guest_id is None:
                raise ValidationError("A direct booking needs the guest it is made for")
            if request.guest_id == prop.host_id:
                raise ValidationError("The owner cannot be the guest of a direct booking")
            guest_id = request.guest_id
        else:
            if actor.user_id == prop.host_id:
                raise Unauthorized("Owners can only enter direct bookings on their own property")
            if direct_fields or request.guest_id not in (None, actor.user_id):
                raise Unauthorized("Only direct bookings can set a negotiated price or another guest")
            guest_id = actor.user_id

        now = utcnow()
        await self._assert_host_accepts_bookings(db, prop.host_id, now)

        available = await availability_service.is_available(
            db, prop.id, request.room_id, request.check_in, request.check_out
        )
        if not available:
            raise DateRangeConflict()

        breakdown = await pricing_service.price_stay(
            db,
            prop,
            room,
            request.check_in,
            request.check_out,
            adults=request.adults,
            children=request.children,
            infants=request.infants,
            coupon_code=request.coupon_code,
            is_group_booking=request.is_group_booking,
            group_size=request.group_size,
            negotiated_total=request.negotiated_total if request.is_direct else None,
            add_ons=[AddOnLine(a.name, a.amount) for a in request.add_ons] if request.is_direct else [],
            today=today,
        )

        booking = Booking(
            confirmation_code=await generate_confirmation_code(db),
            property_id=prop.id,
            room_id=room.id if room else None,
            guest_id=guest_id,
            host_id=prop.host_id,
            created_by=actor.user_id,
            check_in=request.check_in,
            check_out=request.check_out,
            adults=request.adults,
            children=request.children,
            infants=request.infants,
            is_group_booking=request.is_group_booking,
            group_size=request.group_size,
            coupon_code=request.coupon_code,
            currency=prop.currency,
            is_direct=request.is_direct,
            negotiated_total=request.negotiated_total if request.is_direct else None,
            payment_method=request.payment_method,
            special_requests=request.special_requests,
            status="pending",
            payment_status="unpaid",
            amount_paid=0,
            commission_paid=False,
            add_ons=[BookingAddOn(name=line.name, amount=line.amount) for line in breakdown.add_ons],
        )
        _apply_breakdown(booking, breakdown)

        if request.is_direct and request.mark_paid and request.payment_method == "cash":
            booking.payment_status = "paid"
            booking.amount_paid = booking.total_amount
            booking.paid_at = now
            assert_booking_transition(booking.status, "confirmed")
            booking.status = "confirmed"
            booking.confirmed_at = now

        db.add(booking)
        try:
            await db.flush()
        except IntegrityError as exc:
            if _is_overlap_violation(exc):
                raise DateRangeConflict() from exc
            raise

        logger.info(
            "Booking %s created on property %s (%s → %s) status=%s total=%s",
            booking.confirmation_code,
            prop.id,
            booking.check_in,
            booking.check_out,
            booking.status,
            booking.total_amount,
        )

        payload = _booking_payload(booking)
        notification_service.queue(db, notification_service.BOOKING_CREATED, booking.host_id, payload)
        notification_service.queue(db, notification_service.BOOKING_CREATED, booking.guest_id, payload)
        if booking.status == "confirmed":
            _queue_confirmation(db, booking, payload)
        return booking

    async def confirm_booking(self, db: AsyncSession, booking_id: UUID, actor: Actor) -> Booking:
        """Confirm a pending or awaiting booking (owner, admin or managing worker)."""
        booking = await self.get_booking(db, booking_id, for_update=True)
        await authorize_booking_action(db, actor, BookingAction.CONFIRM, booking.host_id)

        assert_booking_transition(booking.status, "confirmed")
        booking.status = "confirmed"
        booking.confirmed_at = utcnow()
        await db.flush()
        logger.info("Booking %s confirmed by %s", booking.confirmation_code, actor.user_id)

        _queue_confirmation(db, booking, _booking_payload(booking))
        return booking

    async def modify_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        changes: BookingModify,
        actor: Actor,
        today: date | None = None,
    ) -> Booking:
        """Change dates or guest counts, re-checking availability and repricing.

        The commission rate fixed at creation is kept.
        """
        booking = await self.get_booking(db, booking_id, for_update=True)
        await authorize_booking_action(
            db, actor, BookingAction.MODIFY, booking.host_id, booking.guest_id
        )
        if is_terminal(booking.status):
            raise InvalidStateTransition(f"Cannot modify a {booking.status} booking")

        check_in = changes.check_in or booking.check_in
        check_out = changes.check_out or booking.check_out
        adults = changes.adults if changes.adults is not None else booking.adults
        children = changes.children if changes.children is not None else booking.children
        infants = changes.infants if changes.infants is not None else booking.infants
        if check_out <= check_in:
            raise InvalidDateRange()

        prop = await self._get_property(db, booking.property_id, for_update=True)
        room = await self._get_room(db, prop, booking.room_id)

        available = await availability_service.is_available(
            db, prop.id, booking.room_id, check_in, check_out, exclude_booking_id=booking.id
        )
        if not available:
            raise DateRangeConflict()

        breakdown = await pricing_service.price_stay(
            db,
            prop,
            room,
            check_in,
            check_out,
            adults=adults,
            children=children,
            infants=infants,
            coupon_code=booking.coupon_code,
            is_group_booking=booking.is_group_booking,
            group_size=booking.group_size,
            negotiated_total=booking.negotiated_total,
            add_ons=[AddOnLine(a.name, a.amount) for a in booking.add_ons],
            commission_rate=booking.commission_rate,
            today=today,
        )

        booking.check_in = check_in
        booking.check_out = check_out
        booking.adults = adults
        booking.children = children
        booking.infants = infants
        _apply_breakdown(booking, breakdown)

        try:
            await db.flush()
        except IntegrityError as exc:
            if _is_overlap_violation(exc):
                raise DateRangeConflict() from exc
            raise

        logger.info(
            "Booking %s modified: %s → %s total=%s",
            booking.confirmation_code,
            check_in,
            check_out,
            booking.total_amount,
        )
        return booking

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Actor,
        reason: str | None = None,
        today: date | None = None,
    ) -> Booking:
        """Cancel a live booking.

        Only administrators may cancel once the check-in date has passed.
        """
        booking = await self.get_booking(db, booking_id, for_update=True)
        cancelled_by = await authorize_booking_action(
            db, actor, BookingAction.CANCEL, booking.host_id, booking.guest_id
        )
        assert_booking_transition(booking.status, "cancelled")

        today = today or local_today(settings.timezone)
        if cancelled_by != "admin" and today > booking.check_in:
            raise Unauthorized("Only administrators can cancel after the check-in date")

        booking.status = "cancelled"
        booking.cancelled_by = cancelled_by
        booking.cancellation_reason = reason
        booking.cancelled_at = utcnow()
        await db.flush()
        logger.info("Booking %s cancelled by %s", booking.confirmation_code, cancelled_by)

        payload = {**_booking_payload(booking), "cancelled_by": cancelled_by}
        notification_service.queue(db, notification_service.BOOKING_CANCELLED, booking.guest_id, payload)
        notification_service.queue(db, notification_service.BOOKING_CANCELLED, booking.host_id, payload)
        return booking

    async def record_payment_confirmed(
        self, db: AsyncSession, event: PaymentConfirmedEvent
    ) -> Booking:
        """Apply an inbound payment confirmation; repeated events are no-ops."""
        if event.amount_paid <= 0:
            raise InvalidAmount()
        booking = await self.get_booking(db, event.booking_id, for_update=True)
        if booking.payment_status == "paid":
            logger.info("Payment for booking %s already recorded", booking.confirmation_code)
            return booking
        if is_terminal(booking.status):
            raise InvalidStateTransition(f"Cannot record payment on a {booking.status} booking")

        booking.payment_status = "paid"
        booking.amount_paid = event.amount_paid
        booking.payment_method = event.method
        booking.paid_at = utcnow()
        if booking.status == "pending":
            assert_booking_transition(booking.status, "awaiting")
            booking.status = "awaiting"
        await db.flush()
        logger.info(
            "Payment of %s recorded for booking %s via %s",
            event.amount_paid,
            booking.confirmation_code,
            event.method,
        )

        payload = {**_booking_payload(booking), "amount_paid": booking.amount_paid}
        notification_service.queue(db, notification_service.PAYMENT_RECEIVED, booking.guest_id, payload)
        notification_service.queue(db, notification_service.PAYMENT_RECEIVED, booking.host_id, payload)
        return booking

    async def end_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Actor,
        today: date | None = None,
    ) -> Booking:
        """Close a confirmed stay once its check-out date is reached."""
        booking = await self.get_booking(db, booking_id, for_update=True)
        await authorize_booking_action(db, actor, BookingAction.END, booking.host_id)
        today = today or local_today(settings.timezone)
        if today < booking.check_out:
            raise InvalidStateTransition("The stay has not finished yet")
        self._end(db, booking)
        await db.flush()
        return booking

    def _end(self, db: AsyncSession, booking: Booking) -> None:
        assert_booking_transition(booking.status, "ended")
        booking.status = "ended"
        booking.ended_at = utcnow()
        logger.info("Booking %s ended", booking.confirmation_code)
        notification_service.queue(
            db, notification_service.REVIEW_REMINDER, booking.guest_id, _booking_payload(booking)
        )

    async def end_finished_bookings(self, db: AsyncSession, today: date | None = None) -> int:
        """End every confirmed booking whose check-out date has been reached."""
        today = today or local_today(settings.timezone)
        result = await db.execute(
            select(Booking)
            .where(Booking.status == "confirmed", Booking.check_out <= today)
            .order_by(Booking.check_out, Booking.id)
        )
        bookings = result.scalars().all()
        for booking in bookings:
            self._end(db, booking)
        await db.flush()
        return len(bookings)


# Singleton instance
booking_service = BookingService()
