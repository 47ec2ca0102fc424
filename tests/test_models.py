from datetime import date

from sqlalchemy import inspect

from akwanda.models.booking import Booking
from akwanda.models.property import Promotion, Property, Room
from tests.factories import make_commission_booking, make_property, make_room, make_user


def test_listing_relationships_pair_with_property():
    pairs = {
        Booking: "bookings",
        Room: "rooms",
        Promotion: "promotions",
    }
    for model, collection in pairs.items():
        listing = inspect(model).relationships["listing"]
        assert listing.mapper.class_ is Property
        assert listing.back_populates == collection
        assert inspect(Property).relationships[collection].back_populates == "listing"


def test_no_relationship_shadows_the_property_builtin():
    for model in (Booking, Room, Promotion):
        assert "property" not in inspect(model).relationships


async def test_booking_loads_its_listing(db):
    host = await make_user(db, "host")
    guest = await make_user(db, "guest")
    prop = await make_property(db, host)
    room = await make_room(db, prop)
    booking = await make_commission_booking(db, prop, guest, 4_000, check_in=date(2026, 2, 10))
    await db.refresh(prop, ["bookings", "rooms"])
    await db.refresh(booking, ["listing"])
    await db.refresh(room, ["listing"])

    assert booking.listing is prop
    assert room.listing is prop
    assert [b.id for b in prop.bookings] == [booking.id]
