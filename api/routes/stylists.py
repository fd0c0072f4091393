"""
Stylist availability API Endpoints

- GET  /api/stylists/{id}/available-slots?date=YYYY-MM-DD&duration=N
- GET  /api/stylists/{id}/schedules
- POST /api/stylists/{id}/schedules   (admin)
- DELETE /api/stylists/schedules/{window_id}   (admin)

Slot lookups and schedule listings are public; schedule writes need an
admin token.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from api.dependencies import get_store
from api.security import get_current_principal
from scheduling.models import Principal, WeeklyAvailabilityWindow
from scheduling.ports import SchedulingStore
from scheduling.services import reservation_service
from scheduling.services.availability_service import get_available_slots
from scheduling.utils.time_utils import format_hhmm, parse_date, parse_hhmm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stylists", tags=["stylists"])


# =============================================================================
# Pydantic Models
# =============================================================================


class SlotResponse(BaseModel):
    time: str  # HH:MM
    available: bool


class CreateScheduleRequest(BaseModel):
    day_of_week: int  # 0=Sunday..6=Saturday
    start_time: str  # HH:MM
    end_time: str  # HH:MM


class ScheduleResponse(BaseModel):
    id: str | None
    stylist_id: str
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool

    @classmethod
    def from_window(cls, window: WeeklyAvailabilityWindow) -> "ScheduleResponse":
        return cls(
            id=str(window.id) if window.id else None,
            stylist_id=str(window.stylist_id),
            day_of_week=window.day_of_week,
            start_time=format_hhmm(window.start_time),
            end_time=format_hhmm(window.end_time),
            is_active=window.is_active,
        )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/{stylist_id}/available-slots", response_model=list[SlotResponse])
async def available_slots(
    stylist_id: UUID,
    store: Annotated[SchedulingStore, Depends(get_store)],
    date: Annotated[str, Query(description="YYYY-MM-DD")],
    duration: Annotated[int, Query(description="Requested duration in minutes")],
):
    """Candidate start times for a stylist on a date."""
    slots = await get_available_slots(
        store,
        stylist_id=stylist_id,
        booking_date=parse_date(date),
        duration_minutes=duration,
    )
    return [SlotResponse(time=format_hhmm(s.start_time), available=s.available) for s in slots]


@router.get("/{stylist_id}/schedules", response_model=list[ScheduleResponse])
async def list_schedules(
    stylist_id: UUID,
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    windows = await reservation_service.list_schedule_windows(store, stylist_id)
    return [ScheduleResponse.from_window(w) for w in windows]


@router.post(
    "/{stylist_id}/schedules",
    status_code=status.HTTP_201_CREATED,
    response_model=ScheduleResponse,
)
async def create_schedule(
    stylist_id: UUID,
    request: CreateScheduleRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    """Add a weekly working window (admin only)."""
    window = await reservation_service.add_schedule_window(
        store,
        principal,
        stylist_id=stylist_id,
        day_of_week=request.day_of_week,
        start_time=parse_hhmm(request.start_time),
        end_time=parse_hhmm(request.end_time),
    )
    return ScheduleResponse.from_window(window)


@router.delete("/schedules/{window_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    window_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    """Remove a weekly working window (admin only); its weekday can then be set again."""
    await reservation_service.delete_schedule_window(store, principal, window_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
