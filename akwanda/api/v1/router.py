"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from akwanda.api.v1 import (
    admin,
    availability,
    bookings,
    dues,
    hosts,
    payments,
    rooms,
)

api_router = APIRouter()

# Availability
api_router.include_router(availability.router, prefix="/availability", tags=["Availability"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Dues
api_router.include_router(dues.router, prefix="/dues", tags=["Dues"])

# Hosts
api_router.include_router(hosts.router, prefix="/hosts", tags=["Hosts"])

# Rooms
api_router.include_router(rooms.router, prefix="/rooms", tags=["Rooms"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
