"""Database models."""

from akwanda.models.booking import Booking, BookingAddOn
from akwanda.models.dues import DuesLedgerEntry
from akwanda.models.property import (
    CommissionSettings,
    Promotion,
    Property,
    Room,
    RoomClosedDate,
)
from akwanda.models.user import HostFine, User, WorkerPrivilege

__all__ = [
    # User
    "User",
    "HostFine",
    "WorkerPrivilege",
    # Property
    "Property",
    "Room",
    "RoomClosedDate",
    "Promotion",
    "CommissionSettings",
    # Booking
    "Booking",
    "BookingAddOn",
    # Dues
    "DuesLedgerEntry",
]
