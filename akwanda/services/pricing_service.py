"""Stay pricing.

CRITICAL BUSINESS LOGIC:
- Tax is embedded in the guest total and extracted from it, never added on top
- tax = round(gross × r / (100 + r)), amount_before_tax = gross − tax
- A direct booking's negotiated total replaces the computed price; promotions
  and the group discount are voided for it
- Add-ons are layered on the total only; they never touch the commission base
- All amounts are whole currency units rounded half up
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.config import settings
from akwanda.core.exceptions import CapacityExceeded, InvalidAmount, InvalidDateRange
from akwanda.models.property import Promotion, Property, Room
from akwanda.services.commission_service import commission_service
from akwanda.utils.dates import local_today
from akwanda.utils.money import HUNDRED, percent_of, round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddOnLine:
    name: str
    amount: int


@dataclass(frozen=True)
class PriceBreakdown:
    """Monetary breakdown of one stay."""

    nightly_rate: int
    nights: int
    base_price: int
    promotion_id: UUID | None
    promotion_discount_percent: Decimal
    promotion_discount_amount: int
    group_discount_amount: int
    amount_before_tax: int
    tax_rate: Decimal
    tax_amount: int
    add_ons_total: int
    total_amount: int
    commission_rate: Decimal
    commission_amount: int
    is_direct: bool = False
    add_ons: tuple[AddOnLine, ...] = field(default_factory=tuple)


def extract_tax(gross: int, tax_rate: Decimal) -> tuple[int, int]:
    """Split a tax-inclusive amount into (amount_before_tax, tax)."""
    tax = round_money(Decimal(gross) * tax_rate / (HUNDRED + tax_rate))
    return gross - tax, tax


def back_derive_from_total(negotiated_total: int, tax_rate: Decimal) -> tuple[int, int]:
    """(amount_before_tax, tax) of a negotiated tax-inclusive total."""
    amount_before_tax = round_money(Decimal(negotiated_total) * HUNDRED / (HUNDRED + tax_rate))
    return amount_before_tax, negotiated_total - amount_before_tax


def guest_factor(
    adults: int,
    children: int,
    infants: int,
    children_percent: Decimal,
    infant_percent: Decimal,
) -> Decimal:
    factor = (
        Decimal(adults)
        + Decimal(children) * Decimal(children_percent) / HUNDRED
        + Decimal(infants) * Decimal(infant_percent) / HUNDRED
    )
    return max(factor, Decimal("1"))


def clamp_promotion_percent(percent: Decimal) -> Decimal:
    low = Decimal(settings.promotion_min_percent)
    high = Decimal(settings.promotion_max_percent)
    return min(max(Decimal(percent), low), high)


def promotion_is_eligible(
    promotion: Promotion,
    check_in: date,
    today: date,
    coupon_code: str | None = None,
) -> bool:
    """Whether one promotion applies to a stay starting ``check_in``."""
    if not promotion.active:
        return False
    if promotion.start_date and today < promotion.start_date:
        return False
    if promotion.end_date and today > promotion.end_date:
        return False

    days_until_check_in = (check_in - today).days
    if promotion.kind == "coupon":
        if not coupon_code or not promotion.coupon_code:
            return False
        return promotion.coupon_code.strip().lower() == coupon_code.strip().lower()
    if promotion.kind == "last_minute":
        threshold = promotion.last_minute_within_days
        return threshold is not None and 0 <= days_until_check_in <= threshold
    if promotion.kind == "advance_purchase":
        threshold = promotion.min_advance_days
        return threshold is not None and days_until_check_in >= threshold
    return False


def select_promotion(
    promotions: Iterable[Promotion],
    check_in: date,
    today: date,
    coupon_code: str | None = None,
) -> tuple[Promotion | None, Decimal]:
    """Pick the single best eligible promotion (discounts never stack)."""
    best: Promotion | None = None
    best_percent = Decimal("0")
    for promotion in promotions:
        if not promotion_is_eligible(promotion, check_in, today, coupon_code):
            continue
        percent = clamp_promotion_percent(promotion.discount_percent)
        if percent > best_percent:
            best, best_percent = promotion, percent
    return best, best_percent


def assert_capacity(
    target: Property | Room,
    adults: int,
    children: int,
    infants: int,
) -> None:
    """Reject compositions over the room's (or property's heuristic) limits."""
    if adults < 1:
        raise CapacityExceeded("At least one adult is required")
    if min(children, infants) < 0:
        raise CapacityExceeded("Guest counts cannot be negative")
    for label, count, limit in (
        ("adults", adults, target.max_adults),
        ("children", children, target.max_children),
        ("infants", infants, target.max_infants),
    ):
        if limit is not None and count > limit:
            raise CapacityExceeded(f"Maximum {limit} {label} allowed, got {count}")


class PricingService:
    """Computes price breakdowns; holds no state."""

    def calculate(
        self,
        *,
        nightly_rate: int,
        check_in: date,
        check_out: date,
        adults: int = 1,
        children: int = 0,
        infants: int = 0,
        children_percent: Decimal | None = None,
        infant_percent: Decimal | None = None,
        promotions: Sequence[Promotion] = (),
        coupon_code: str | None = None,
        is_group_booking: bool = False,
        group_size: int | None = None,
        group_discount_enabled: bool = False,
        group_discount_percent: Decimal = Decimal("0"),
        negotiated_total: int | None = None,
        add_ons: Sequence[AddOnLine] = (),
        commission_rate: Decimal = Decimal("0"),
        tax_rate: Decimal | None = None,
        today: date | None = None,
    ) -> PriceBreakdown:
        """Price a stay.

        Args:
            nightly_rate: Room (or property) rate for one adult
            check_in: Arrival date
            check_out: Departure date
            negotiated_total: Tax-inclusive total agreed on a direct booking
            add_ons: Flat service lines of a direct booking
            commission_rate: Rate in effect for this booking, percent

        Returns:
            PriceBreakdown: Full breakdown

        Raises:
            InvalidDateRange: If check_out <= check_in
            InvalidAmount: If a negotiated total or add-on is negative
        """
        if check_out <= check_in:
            raise InvalidDateRange(f"Check-out {check_out} must be after check-in {check_in}")
        if today is None:
            today = local_today(settings.timezone)
        if tax_rate is None:
            tax_rate = settings.tax_rate_percent
        if children_percent is None:
            children_percent = settings.default_children_percent
        if infant_percent is None:
            infant_percent = settings.default_infant_percent

        nights = (check_out - check_in).days
        factor = guest_factor(adults, children, infants, children_percent, infant_percent)
        adjusted_nightly = round_money(Decimal(nightly_rate) * factor)
        base_price = adjusted_nightly * nights

        add_on_lines = tuple(add_ons)
        if any(line.amount < 0 for line in add_on_lines):
            raise InvalidAmount("Add-on amounts cannot be negative")
        add_ons_total = sum(line.amount for line in add_on_lines)

        promotion_id = None
        promotion_percent = Decimal("0")
        promotion_amount = 0
        group_amount = 0

        if negotiated_total is not None:
            if negotiated_total < 0:
                raise InvalidAmount("Negotiated total cannot be negative")
            amount_before_tax, tax_amount = back_derive_from_total(negotiated_total, tax_rate)
            gross = negotiated_total
        else:
            promotion, promotion_percent = select_promotion(
                promotions, check_in, today, coupon_code
            )
            if promotion is not None:
                promotion_id = promotion.id
                promotion_amount = percent_of(base_price, promotion_percent)

            if (
                is_group_booking
                and group_discount_enabled
                and (group_size or 0) >= settings.group_discount_min_size
            ):
                group_amount = percent_of(base_price - promotion_amount, group_discount_percent)

            gross = max(base_price - promotion_amount - group_amount, 0)
            amount_before_tax, tax_amount = extract_tax(gross, tax_rate)

        commission_amount = commission_service.calculate_commission(
            amount_before_tax, commission_rate
        )

        return PriceBreakdown(
            nightly_rate=adjusted_nightly,
            nights=nights,
            base_price=base_price,
            promotion_id=promotion_id,
            promotion_discount_percent=promotion_percent,
            promotion_discount_amount=promotion_amount,
            group_discount_amount=group_amount,
            amount_before_tax=amount_before_tax,
            tax_rate=Decimal(tax_rate),
            tax_amount=tax_amount,
            add_ons_total=add_ons_total,
            total_amount=gross + add_ons_total,
            commission_rate=Decimal(commission_rate),
            commission_amount=commission_amount,
            is_direct=negotiated_total is not None or bool(add_on_lines),
            add_ons=add_on_lines,
        )

    async def load_promotions(self, db: AsyncSession, property_id: UUID) -> list[Promotion]:
        result = await db.execute(
            select(Promotion).where(
                Promotion.property_id == property_id,
                Promotion.active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def price_stay(
        self,
        db: AsyncSession,
        prop: Property,
        room: Room | None,
        check_in: date,
        check_out: date,
        adults: int = 1,
        children: int = 0,
        infants: int = 0,
        coupon_code: str | None = None,
        is_group_booking: bool = False,
        group_size: int | None = None,
        negotiated_total: int | None = None,
        add_ons: Sequence[AddOnLine] = (),
        commission_rate: Decimal | None = None,
        today: date | None = None,
    ) -> PriceBreakdown:
        """Price a stay on a stored property (and optional room).

        ``commission_rate`` pins the rate of an existing booking; when omitted
        the rate is resolved from the property and the commission settings.

        Raises:
            CapacityExceeded: If the composition exceeds the limits
        """
        target = room if room is not None else prop
        assert_capacity(target, adults, children, infants)

        if commission_rate is None:
            commission_settings = await commission_service.get_settings(db)
            commission_rate = commission_service.resolve_rate(
                prop.commission_rate, prop.commission_tier, commission_settings
            )

        children_percent = target.children_percent
        if children_percent is None:
            children_percent = prop.children_percent
        infant_percent = target.infant_percent
        if infant_percent is None:
            infant_percent = prop.infant_percent

        promotions = await self.load_promotions(db, prop.id) if negotiated_total is None else []

        breakdown = self.calculate(
            nightly_rate=target.price_per_night,
            check_in=check_in,
            check_out=check_out,
            adults=adults,
            children=children,
            infants=infants,
            children_percent=children_percent,
            infant_percent=infant_percent,
            promotions=promotions,
            coupon_code=coupon_code,
            is_group_booking=is_group_booking,
            group_size=group_size,
            group_discount_enabled=prop.group_discount_enabled,
            group_discount_percent=prop.group_discount_percent or Decimal("0"),
            negotiated_total=negotiated_total,
            add_ons=add_ons,
            commission_rate=commission_rate,
            today=today,
        )
        logger.debug(
            "Priced stay on property %s: total=%s tax=%s commission=%s",
            prop.id,
            breakdown.total_amount,
            breakdown.tax_amount,
            breakdown.commission_amount,
        )
        return breakdown


# Singleton instance
pricing_service = PricingService()
