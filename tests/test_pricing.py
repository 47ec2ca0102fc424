from datetime import timedelta
from decimal import Decimal

import pytest

from akwanda.core.exceptions import CapacityExceeded, InvalidAmount, InvalidDateRange
from akwanda.models.property import Promotion, Room
from akwanda.services.commission_service import commission_service
from akwanda.services.pricing_service import (
    AddOnLine,
    assert_capacity,
    back_derive_from_total,
    extract_tax,
    pricing_service,
    select_promotion,
)
from tests.factories import TODAY, make_promotion, make_property, make_room, make_user


def _promotion(kind: str, percent: int, **fields) -> Promotion:
    fields.setdefault("active", True)
    return Promotion(kind=kind, discount_percent=Decimal(percent), **fields)


def test_tax_is_extracted_from_the_guest_total():
    breakdown = pricing_service.calculate(
        nightly_rate=90_000,
        check_in=TODAY,
        check_out=TODAY + timedelta(days=1),
        today=TODAY,
    )

    assert breakdown.base_price == 90_000
    assert breakdown.tax_amount == 2_621
    assert breakdown.amount_before_tax == 87_379
    assert breakdown.total_amount == 90_000


def test_tax_identity_holds_for_awkward_amounts():
    for gross in (0, 1, 17, 999, 10_301, 90_000, 1_234_567):
        amount_before_tax, tax = extract_tax(gross, Decimal("3"))
        assert amount_before_tax + tax == gross


def test_best_promotion_wins_and_discounts_do_not_stack():
    promotions = [
        _promotion("last_minute", 15, last_minute_within_days=7),
        _promotion("coupon", 20, coupon_code="KIVU20"),
    ]
    check_in = TODAY + timedelta(days=2)

    breakdown = pricing_service.calculate(
        nightly_rate=90_000,
        check_in=check_in,
        check_out=check_in + timedelta(days=2),
        promotions=promotions,
        coupon_code="kivu20",
        today=TODAY,
    )

    assert breakdown.promotion_discount_percent == Decimal("20")
    assert breakdown.promotion_discount_amount == 36_000
    assert breakdown.total_amount == 144_000
    assert breakdown.tax_amount == 4_194
    assert breakdown.amount_before_tax == 139_806


def test_last_minute_applies_without_a_coupon():
    promotions = [
        _promotion("last_minute", 15, last_minute_within_days=7),
        _promotion("coupon", 20, coupon_code="KIVU20"),
    ]
    check_in = TODAY + timedelta(days=2)

    breakdown = pricing_service.calculate(
        nightly_rate=90_000,
        check_in=check_in,
        check_out=check_in + timedelta(days=2),
        promotions=promotions,
        today=TODAY,
    )

    assert breakdown.promotion_discount_percent == Decimal("15")
    assert breakdown.total_amount == 153_000


def test_promotion_eligibility_windows():
    check_in = TODAY + timedelta(days=30)
    advance = _promotion("advance_purchase", 12, min_advance_days=21)
    last_minute = _promotion("last_minute", 25, last_minute_within_days=7)
    expired = _promotion("advance_purchase", 40, min_advance_days=1, end_date=TODAY - timedelta(days=1))
    inactive = _promotion("advance_purchase", 50, min_advance_days=1, active=False)

    best, percent = select_promotion([advance, last_minute, expired, inactive], check_in, TODAY)

    assert best is advance
    assert percent == Decimal("12")


def test_promotion_percent_is_clamped():
    best, percent = select_promotion(
        [_promotion("advance_purchase", 95, min_advance_days=0)], TODAY, TODAY
    )
    assert best is not None
    assert percent == Decimal("90")


def test_group_discount_requires_minimum_group_size():
    kwargs = dict(
        nightly_rate=90_000,
        check_in=TODAY,
        check_out=TODAY + timedelta(days=2),
        is_group_booking=True,
        group_discount_enabled=True,
        group_discount_percent=Decimal("10"),
        today=TODAY,
    )

    small = pricing_service.calculate(group_size=3, **kwargs)
    large = pricing_service.calculate(group_size=4, **kwargs)

    assert small.group_discount_amount == 0
    assert large.group_discount_amount == 18_000
    assert large.total_amount == 162_000


def test_children_and_infants_weight_the_nightly_rate():
    breakdown = pricing_service.calculate(
        nightly_rate=90_000,
        check_in=TODAY,
        check_out=TODAY + timedelta(days=1),
        adults=2,
        children=1,
        infants=1,
        children_percent=Decimal("50"),
        infant_percent=Decimal("0"),
        today=TODAY,
    )

    assert breakdown.nightly_rate == 225_000
    assert breakdown.base_price == 225_000


def test_negotiated_total_overrides_price_and_voids_promotions():
    breakdown = pricing_service.calculate(
        nightly_rate=90_000,
        check_in=TODAY,
        check_out=TODAY + timedelta(days=3),
        promotions=[_promotion("advance_purchase", 30, min_advance_days=0)],
        negotiated_total=103_000,
        add_ons=[AddOnLine("Airport pickup", 20_000)],
        commission_rate=Decimal("10"),
        today=TODAY,
    )

    assert breakdown.is_direct
    assert breakdown.promotion_discount_amount == 0
    assert breakdown.amount_before_tax == 100_000
    assert breakdown.tax_amount == 3_000
    assert breakdown.add_ons_total == 20_000
    assert breakdown.total_amount == 123_000
    # Add-ons never reach the commission base
    assert breakdown.commission_amount == 10_000


def test_back_derivation_rounds_half_up():
    amount_before_tax, tax = back_derive_from_total(90_000, Decimal("3"))
    assert amount_before_tax == 87_379
    assert tax == 2_621


def test_invalid_amounts_and_ranges_are_rejected():
    with pytest.raises(InvalidDateRange):
        pricing_service.calculate(nightly_rate=1_000, check_in=TODAY, check_out=TODAY, today=TODAY)
    with pytest.raises(InvalidAmount):
        pricing_service.calculate(
            nightly_rate=1_000,
            check_in=TODAY,
            check_out=TODAY + timedelta(days=1),
            negotiated_total=-5,
            today=TODAY,
        )
    with pytest.raises(InvalidAmount):
        pricing_service.calculate(
            nightly_rate=1_000,
            check_in=TODAY,
            check_out=TODAY + timedelta(days=1),
            add_ons=[AddOnLine("Breakfast", -1)],
            today=TODAY,
        )


def test_commission_grows_with_the_rate():
    previous = -1
    for rate in ("0", "8", "10", "12", "12.5"):
        amount = commission_service.calculate_commission(87_379, Decimal(rate))
        assert amount >= previous
        previous = amount
    assert commission_service.calculate_commission(87_379, Decimal("10")) == 8_738


def test_capacity_limits():
    room = Room(max_adults=2, max_children=1, max_infants=1)

    assert_capacity(room, 2, 1, 1)
    with pytest.raises(CapacityExceeded):
        assert_capacity(room, 3, 0, 0)
    with pytest.raises(CapacityExceeded):
        assert_capacity(room, 0, 1, 0)
    with pytest.raises(CapacityExceeded):
        assert_capacity(room, 1, 2, 0)


async def test_price_stay_resolves_commission_from_the_band(db):
    host = await make_user(db, "host")
    in_band = await make_property(db, host, commission_rate=Decimal("10"))
    out_of_band = await make_property(db, host, commission_rate=Decimal("20"), commission_tier="featured")
    unset = await make_property(db, host, commission_rate=None, commission_tier="base")

    check_out = TODAY + timedelta(days=1)
    first = await pricing_service.price_stay(db, in_band, None, TODAY, check_out, today=TODAY)
    second = await pricing_service.price_stay(db, out_of_band, None, TODAY, check_out, today=TODAY)
    third = await pricing_service.price_stay(db, unset, None, TODAY, check_out, today=TODAY)

    assert first.commission_rate == Decimal("10")
    assert second.commission_rate == Decimal("12")
    assert third.commission_rate == Decimal("8")
    assert first.commission_amount == 8_738


async def test_price_stay_uses_room_rate_and_coupon(db):
    host = await make_user(db, "host")
    prop = await make_property(db, host, children_percent=Decimal("50"))
    room = await make_room(db, prop, price_per_night=40_000, children_percent=Decimal("25"))
    await make_promotion(db, prop, "coupon", 10, coupon_code="WELCOME")

    breakdown = await pricing_service.price_stay(
        db,
        prop,
        room,
        TODAY,
        TODAY + timedelta(days=2),
        adults=2,
        children=1,
        coupon_code="WELCOME",
        today=TODAY,
    )

    # 40,000 x (2 + 0.25) per night
    assert breakdown.nightly_rate == 90_000
    assert breakdown.base_price == 180_000
    assert breakdown.promotion_discount_amount == 18_000
    assert breakdown.total_amount == 162_000


async def test_price_stay_checks_capacity(db):
    host = await make_user(db, "host")
    prop = await make_property(db, host)
    room = await make_room(db, prop, max_adults=1)

    with pytest.raises(CapacityExceeded):
        await pricing_service.price_stay(
            db, prop, room, TODAY, TODAY + timedelta(days=1), adults=2, today=TODAY
        )
