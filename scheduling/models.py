"""
Scheduling value types.

This module defines the data structures the engine works on, independent of
the ORM:
- ReservationStatus: Lifecycle status enum
- ServiceSelection: Immutable price/duration snapshot embedded in a reservation
- WeeklyAvailabilityWindow: Recurring weekly working-hours block
- Slot: Candidate start time with an availability flag
- Reservation: Committed booking as read from the Reservation Store
- CatalogService / CustomerProfile / StylistInfo: Collaborator lookups
- Principal: Caller identity (user id + role) resolved by the auth layer
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReservationStatus(str, Enum):
    """Reservation lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


# Statuses that occupy a slot and can still be cancelled
ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


class Role(str, Enum):
    """Caller role as asserted by the auth layer."""

    ADMIN = "admin"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""

    user_id: UUID
    role: Role = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class ServiceSelection:
    """
    Snapshot of a catalog service captured at booking time.

    Never re-resolved after the reservation is created, so later catalog
    edits do not change historical bookings.
    """

    id: UUID
    name: str
    price: Decimal
    duration_minutes: int

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "price": str(self.price),
            "duration_minutes": self.duration_minutes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceSelection":
        return cls(
            id=UUID(str(data["id"])),
            name=data["name"],
            price=Decimal(str(data["price"])),
            duration_minutes=int(data["duration_minutes"]),
        )


@dataclass(frozen=True)
class WeeklyAvailabilityWindow:
    """One block of time a stylist works on one weekday (0=Sunday..6=Saturday)."""

    stylist_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True
    id: UUID | None = None


@dataclass(frozen=True)
class Slot:
    """Candidate booking start time."""

    start_time: time
    available: bool


@dataclass(frozen=True)
class CatalogService:
    id: UUID
    name: str
    price: Decimal
    duration_minutes: int
    is_active: bool = True


@dataclass(frozen=True)
class CustomerProfile:
    id: UUID
    name: str
    phone: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class StylistInfo:
    id: UUID
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class NewReservation:
    """Validated reservation ready to be persisted by the Reservation Store."""

    stylist_id: UUID
    customer_id: UUID
    services: tuple[ServiceSelection, ...]
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    price: Decimal
    notes: str
    customer_name: str
    customer_phone: str
    customer_email: str
    status: ReservationStatus = ReservationStatus.PENDING


@dataclass(frozen=True)
class Reservation:
    """Committed booking."""

    id: UUID
    stylist_id: UUID
    customer_id: UUID
    services: tuple[ServiceSelection, ...]
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    price: Decimal
    status: ReservationStatus
    notes: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = field(default=None, compare=False)

    def is_cancellable(self) -> bool:
        """True iff status is pending or confirmed."""
        return self.status in ACTIVE_STATUSES

    def is_upcoming(self, today: date) -> bool:
        """True iff the booking date is strictly after `today` and the booking is active."""
        return self.booking_date > today and self.status in ACTIVE_STATUSES

    def is_owned_by(self, principal: Principal) -> bool:
        return self.customer_id == principal.user_id
