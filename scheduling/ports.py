"""
Store contracts consumed by the scheduling engine.

The engine never reaches for a global database handle. Callers inject a
SchedulingStore; database.repositories.SqlSchedulingStore is the production
implementation.

Two kinds of units of work are exposed:
- unit_of_work(): a plain transaction for reads and status changes
- booking_unit_of_work(stylist_id, booking_date): a transaction that is
  serialized against every other booking attempt for the same stylist and
  date, spanning the conflict check and the insert
"""

from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Protocol
from uuid import UUID

from scheduling.models import (
    CatalogService,
    CustomerProfile,
    NewReservation,
    Reservation,
    ReservationStatus,
    StylistInfo,
    WeeklyAvailabilityWindow,
)


class ServiceCatalog(Protocol):
    async def get_service(self, service_id: UUID) -> CatalogService | None: ...


class CustomerDirectory(Protocol):
    async def get_customer(self, customer_id: UUID) -> CustomerProfile | None: ...


class StylistDirectory(Protocol):
    async def get_stylist(self, stylist_id: UUID) -> StylistInfo | None: ...


class ScheduleStore(Protocol):
    async def get_active_windows_for_stylist(
        self, stylist_id: UUID
    ) -> list[WeeklyAvailabilityWindow]: ...

    # Raises ScheduleConflictError if the weekday already has a live window
    async def add_window(
        self, window: WeeklyAvailabilityWindow
    ) -> WeeklyAvailabilityWindow: ...

    # None when the window is unknown or already deleted
    async def soft_delete(self, window_id: UUID) -> WeeklyAvailabilityWindow | None: ...


class ReservationStore(Protocol):
    async def create(self, new: NewReservation) -> Reservation: ...

    async def get(self, reservation_id: UUID) -> Reservation | None: ...

    async def list_by_stylist_and_date(
        self, stylist_id: UUID, booking_date: date, *, for_update: bool = False
    ) -> list[Reservation]:
        """Non-cancelled, non-deleted reservations ordered by start time."""
        ...

    async def list_by_customer(
        self, customer_id: UUID, *, upcoming_after: date | None = None
    ) -> list[Reservation]: ...

    async def search(
        self,
        *,
        customer_id: UUID | None = None,
        status: ReservationStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Reservation], int]: ...

    async def update_status(
        self,
        reservation_id: UUID,
        expected: ReservationStatus,
        new: ReservationStatus,
    ) -> Reservation | None:
        """Apply `new` only if the current status is still `expected`; None otherwise."""
        ...

    async def soft_delete(self, reservation_id: UUID) -> bool: ...


class UnitOfWork(Protocol):
    services: ServiceCatalog
    customers: CustomerDirectory
    stylists: StylistDirectory
    schedules: ScheduleStore
    reservations: ReservationStore

    async def commit(self) -> None: ...


class SchedulingStore(Protocol):
    def unit_of_work(self) -> AbstractAsyncContextManager[UnitOfWork]: ...

    def booking_unit_of_work(
        self, stylist_id: UUID, booking_date: date
    ) -> AbstractAsyncContextManager[UnitOfWork]: ...
