"""
Booking API Endpoints

Provides REST endpoints for:
- POST   /api/bookings                 Create a reservation (PENDING)
- GET    /api/bookings                 Paginated list (customers see only their own)
- GET    /api/bookings/me              Caller's reservations, optionally upcoming only
- GET    /api/bookings/{id}            Single reservation (owner or admin)
- PATCH  /api/bookings/{id}/status     Status change (admin)
- POST   /api/bookings/{id}/cancel     Cancellation (owner or admin)
- DELETE /api/bookings/{id}            Soft delete (admin)

Handlers are thin: parsing and serialization only. Every rule lives in the
scheduling package and surfaces here as a SchedulingError, mapped to an HTTP
status by the app-level exception handler.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from api.dependencies import get_store
from api.security import get_current_principal
from scheduling.errors import AccessDeniedError
from scheduling.models import Principal, Reservation, ReservationStatus
from scheduling.ports import SchedulingStore
from scheduling.services import reservation_service
from scheduling.transactions import BookingTransaction
from scheduling.utils.time_utils import format_hhmm, parse_date, parse_hhmm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


# =============================================================================
# Pydantic Models
# =============================================================================


class CreateBookingRequest(BaseModel):
    stylist_id: UUID
    service_ids: list[UUID]
    booking_date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    notes: str = ""
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    # Admins may book on behalf of a customer
    customer_id: UUID | None = None


class UpdateStatusRequest(BaseModel):
    status: ReservationStatus


class ServiceSnapshotResponse(BaseModel):
    id: str
    name: str
    price: Decimal
    duration_minutes: int


class BookingResponse(BaseModel):
    id: str
    stylist_id: str
    customer_id: str
    services: list[ServiceSnapshotResponse]
    booking_date: str
    start_time: str
    end_time: str
    duration_minutes: int
    price: Decimal
    status: str
    notes: str
    customer_name: str
    customer_phone: str
    customer_email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "BookingResponse":
        return cls(
            id=str(reservation.id),
            stylist_id=str(reservation.stylist_id),
            customer_id=str(reservation.customer_id),
            services=[
                ServiceSnapshotResponse(
                    id=str(s.id),
                    name=s.name,
                    price=s.price,
                    duration_minutes=s.duration_minutes,
                )
                for s in reservation.services
            ],
            booking_date=reservation.booking_date.isoformat(),
            start_time=format_hhmm(reservation.start_time),
            end_time=format_hhmm(reservation.end_time),
            duration_minutes=reservation.duration_minutes,
            price=reservation.price,
            status=reservation.status.value,
            notes=reservation.notes,
            customer_name=reservation.customer_name,
            customer_phone=reservation.customer_phone,
            customer_email=reservation.customer_email,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )


class PaginatedBookingsResponse(BaseModel):
    items: list[BookingResponse]
    total: int
    limit: int
    offset: int
    has_more: bool = False


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BookingResponse)
async def create_booking(
    request: CreateBookingRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    """Create a reservation for one or more services."""
    customer_id = principal.user_id
    if request.customer_id is not None and request.customer_id != principal.user_id:
        if not principal.is_admin:
            raise AccessDeniedError("Only administrators can book for another customer")
        customer_id = request.customer_id

    reservation = await BookingTransaction.execute(
        store,
        customer_id=customer_id,
        stylist_id=request.stylist_id,
        service_ids=request.service_ids,
        booking_date=parse_date(request.booking_date),
        start_time=parse_hhmm(request.start_time),
        notes=request.notes,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        customer_email=request.customer_email,
    )
    return BookingResponse.from_reservation(reservation)


@router.get("", response_model=PaginatedBookingsResponse)
async def list_bookings(
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
    status: ReservationStatus | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """List bookings, newest first."""
    items, total = await reservation_service.list_bookings(
        store,
        principal,
        status=status,
        start_date=parse_date(start_date) if start_date else None,
        end_date=parse_date(end_date) if end_date else None,
        limit=limit,
        offset=offset,
    )
    return PaginatedBookingsResponse(
        items=[BookingResponse.from_reservation(r) for r in items],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )


@router.get("/me", response_model=list[BookingResponse])
async def my_bookings(
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
    upcoming: bool = False,
):
    """Caller's own bookings, soonest first."""
    reservations = await reservation_service.list_customer_bookings(
        store, principal, upcoming_only=upcoming
    )
    return [BookingResponse.from_reservation(r) for r in reservations]


@router.get("/{reservation_id}", response_model=BookingResponse)
async def get_booking(
    reservation_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    reservation = await reservation_service.get_booking(store, principal, reservation_id)
    return BookingResponse.from_reservation(reservation)


@router.patch("/{reservation_id}/status", response_model=BookingResponse)
async def update_booking_status(
    reservation_id: UUID,
    request: UpdateStatusRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    """Move a booking through its lifecycle (admin only)."""
    reservation = await reservation_service.update_booking_status(
        store, principal, reservation_id, request.status
    )
    return BookingResponse.from_reservation(reservation)


@router.post("/{reservation_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    reservation_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    reservation = await reservation_service.cancel_booking(store, principal, reservation_id)
    return BookingResponse.from_reservation(reservation)


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    reservation_id: UUID,
    principal: Annotated[Principal, Depends(get_current_principal)],
    store: Annotated[SchedulingStore, Depends(get_store)],
):
    await reservation_service.delete_booking(store, principal, reservation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
