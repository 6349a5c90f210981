"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from trekbook.api.v1 import admin, bookings

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
