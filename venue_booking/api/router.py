"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from venue_booking.api.routes import admin, auth, bookings, events, users
from venue_booking.schemas.common import ErrorResponse

ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse}
    for status_code in (401, 403, 404, 409, 422, 503)
}

api_router = APIRouter(prefix="/api/v1", responses=ERROR_RESPONSES)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(events.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
