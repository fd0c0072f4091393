"""
SQLAlchemy implementations of the scheduling store contracts.

SqlSchedulingStore hands out units of work bound to one AsyncSession. The
booking unit of work serializes every booking attempt for the same
(stylist, date) with a transaction-scoped PostgreSQL advisory lock, so the
conflict check and the insert that follow cannot interleave with another
booking for that stylist and day. Conflicting rows are additionally read
FOR UPDATE.

PostgreSQL is the only supported production backend. SQLite (aiosqlite) is
for tests only: it has no advisory locks, so the lock step is skipped and
concurrent bookings on SQLite are not serialized.

Schedule windows rely on the partial unique index on stylist_schedules
instead: a second live window for the same weekday fails on flush and is
reported as ScheduleConflictError on every dialect.
"""

import hashlib
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import get_async_session
from database.models import Customer, Service, Stylist, StylistSchedule
from database.models import Reservation as ReservationRow
from scheduling.errors import ScheduleConflictError, SlotUnavailableError
from scheduling.models import (
    ACTIVE_STATUSES,
    CatalogService,
    CustomerProfile,
    NewReservation,
    Reservation,
    ReservationStatus,
    ServiceSelection,
    StylistInfo,
    WeeklyAvailabilityWindow,
)

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def advisory_lock_key(stylist_id: UUID, booking_date: date) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    digest = hashlib.blake2b(
        f"{stylist_id}:{booking_date.isoformat()}".encode(), digest_size=8
    ).digest()
    return int.from_bytes(digest, "big", signed=True)


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _is_unique_violation(error: IntegrityError) -> bool:
    # 23505 on PostgreSQL; sqlite3 reports no SQLSTATE
    return _sqlstate(error) == "23505" or "UNIQUE constraint failed" in str(error.orig)


def _to_reservation(row: ReservationRow) -> Reservation:
    return Reservation(
        id=row.id,
        stylist_id=row.stylist_id,
        customer_id=row.customer_id,
        services=tuple(ServiceSelection.from_dict(item) for item in row.services),
        booking_date=row.booking_date,
        start_time=row.start_time,
        end_time=row.end_time,
        duration_minutes=row.duration_minutes,
        price=row.price,
        status=ReservationStatus(row.status),
        notes=row.notes or "",
        customer_name=row.customer_name,
        customer_phone=row.customer_phone or "",
        customer_email=row.customer_email or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_window(row: StylistSchedule) -> WeeklyAvailabilityWindow:
    return WeeklyAvailabilityWindow(
        id=row.id,
        stylist_id=row.stylist_id,
        day_of_week=row.day_of_week,
        start_time=row.start_time,
        end_time=row.end_time,
        is_active=row.is_active,
    )


# ============================================================================
# Collaborator lookups
# ============================================================================


class SqlServiceCatalog:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_service(self, service_id: UUID) -> CatalogService | None:
        result = await self._session.execute(
            select(Service).where(Service.id == service_id, Service.deleted_at.is_(None))
        )
        service = result.scalar_one_or_none()
        if service is None:
            return None
        return CatalogService(
            id=service.id,
            name=service.name,
            price=service.price,
            duration_minutes=service.duration_minutes,
            is_active=service.is_active,
        )


class SqlCustomerDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_customer(self, customer_id: UUID) -> CustomerProfile | None:
        customer = await self._session.get(Customer, customer_id)
        if customer is None:
            return None
        return CustomerProfile(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            email=customer.email,
        )


class SqlStylistDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_stylist(self, stylist_id: UUID) -> StylistInfo | None:
        result = await self._session.execute(
            select(Stylist).where(Stylist.id == stylist_id, Stylist.deleted_at.is_(None))
        )
        stylist = result.scalar_one_or_none()
        if stylist is None:
            return None
        return StylistInfo(id=stylist.id, name=stylist.name, is_active=stylist.is_active)


# ============================================================================
# Schedule Store
# ============================================================================


class SqlScheduleStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active_windows_for_stylist(
        self, stylist_id: UUID
    ) -> list[WeeklyAvailabilityWindow]:
        result = await self._session.execute(
            select(StylistSchedule)
            .where(
                StylistSchedule.stylist_id == stylist_id,
                StylistSchedule.is_active.is_(True),
                StylistSchedule.deleted_at.is_(None),
            )
            .order_by(StylistSchedule.day_of_week, StylistSchedule.start_time)
        )
        return [_to_window(row) for row in result.scalars().all()]

    async def add_window(self, window: WeeklyAvailabilityWindow) -> WeeklyAvailabilityWindow:
        row = StylistSchedule(
            stylist_id=window.stylist_id,
            day_of_week=window.day_of_week,
            start_time=window.start_time,
            end_time=window.end_time,
            is_active=window.is_active,
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as e:
            if not _is_unique_violation(e):
                raise
            logger.warning(
                f"Concurrent window insert for stylist {window.stylist_id} "
                f"day={window.day_of_week} rejected by unique index",
                extra={"stylist_id": str(window.stylist_id)},
            )
            raise ScheduleConflictError(
                "Stylist already has an active window for this weekday",
                details={
                    "stylist_id": str(window.stylist_id),
                    "day_of_week": window.day_of_week,
                },
            ) from e
        return _to_window(row)

    async def soft_delete(self, window_id: UUID) -> WeeklyAvailabilityWindow | None:
        result = await self._session.execute(
            select(StylistSchedule).where(
                StylistSchedule.id == window_id, StylistSchedule.deleted_at.is_(None)
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        row.is_active = False
        row.deleted_at = datetime.now(UTC)
        await self._session.flush()
        return _to_window(row)


# ============================================================================
# Reservation Store
# ============================================================================


class SqlReservationStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, new: NewReservation) -> Reservation:
        row = ReservationRow(
            stylist_id=new.stylist_id,
            customer_id=new.customer_id,
            services=[selection.to_dict() for selection in new.services],
            booking_date=new.booking_date,
            start_time=new.start_time,
            end_time=new.end_time,
            duration_minutes=new.duration_minutes,
            price=new.price,
            status=new.status,
            notes=new.notes,
            customer_name=new.customer_name,
            customer_phone=new.customer_phone,
            customer_email=new.customer_email,
        )
        self._session.add(row)
        await self._session.flush()
        return _to_reservation(row)

    async def get(self, reservation_id: UUID) -> Reservation | None:
        result = await self._session.execute(
            select(ReservationRow)
            .where(ReservationRow.id == reservation_id, ReservationRow.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _to_reservation(row) if row is not None else None

    async def list_by_stylist_and_date(
        self, stylist_id: UUID, booking_date: date, *, for_update: bool = False
    ) -> list[Reservation]:
        stmt = (
            select(ReservationRow)
            .where(
                ReservationRow.stylist_id == stylist_id,
                ReservationRow.booking_date == booking_date,
                ReservationRow.status.in_(list(ACTIVE_STATUSES)),
                ReservationRow.deleted_at.is_(None),
            )
            .order_by(ReservationRow.start_time)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return [_to_reservation(row) for row in result.scalars().all()]

    async def list_by_customer(
        self, customer_id: UUID, *, upcoming_after: date | None = None
    ) -> list[Reservation]:
        stmt = select(ReservationRow).where(
            ReservationRow.customer_id == customer_id,
            ReservationRow.deleted_at.is_(None),
        )
        if upcoming_after is not None:
            stmt = stmt.where(
                ReservationRow.booking_date > upcoming_after,
                ReservationRow.status.in_(list(ACTIVE_STATUSES)),
            )
        stmt = stmt.order_by(ReservationRow.booking_date.asc(), ReservationRow.start_time.asc())
        result = await self._session.execute(stmt)
        return [_to_reservation(row) for row in result.scalars().all()]

    async def search(
        self,
        *,
        customer_id: UUID | None = None,
        status: ReservationStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Reservation], int]:
        filters = [ReservationRow.deleted_at.is_(None)]
        if customer_id is not None:
            filters.append(ReservationRow.customer_id == customer_id)
        if status is not None:
            filters.append(ReservationRow.status == status)
        if start_date is not None:
            filters.append(ReservationRow.booking_date >= start_date)
        if end_date is not None:
            filters.append(ReservationRow.booking_date <= end_date)

        total = await self._session.scalar(
            select(func.count()).select_from(ReservationRow).where(*filters)
        )
        result = await self._session.execute(
            select(ReservationRow)
            .where(*filters)
            .order_by(ReservationRow.booking_date.desc(), ReservationRow.start_time.desc())
            .limit(limit)
            .offset(offset)
        )
        return [_to_reservation(row) for row in result.scalars().all()], total or 0

    async def update_status(
        self,
        reservation_id: UUID,
        expected: ReservationStatus,
        new: ReservationStatus,
    ) -> Reservation | None:
        result = await self._session.execute(
            update(ReservationRow)
            .where(
                ReservationRow.id == reservation_id,
                ReservationRow.status == expected,
                ReservationRow.deleted_at.is_(None),
            )
            .values(status=new, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return await self.get(reservation_id)

    async def soft_delete(self, reservation_id: UUID) -> bool:
        result = await self._session.execute(
            update(ReservationRow)
            .where(ReservationRow.id == reservation_id, ReservationRow.deleted_at.is_(None))
            .values(deleted_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0


# ============================================================================
# Units of work
# ============================================================================


class SqlUnitOfWork:
    """All stores bound to a single session/transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.services = SqlServiceCatalog(session)
        self.customers = SqlCustomerDirectory(session)
        self.stylists = SqlStylistDirectory(session)
        self.schedules = SqlScheduleStore(session)
        self.reservations = SqlReservationStore(session)

    async def commit(self) -> None:
        await self.session.commit()


class SqlSchedulingStore:
    """
    Production SchedulingStore.

    Args:
        session_factory: Async context manager factory yielding an AsyncSession
            (defaults to database.connection.get_async_session)
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] = get_async_session,
    ) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[SqlUnitOfWork]:
        async with self._session_factory() as session:
            yield SqlUnitOfWork(session)

    @asynccontextmanager
    async def booking_unit_of_work(
        self, stylist_id: UUID, booking_date: date
    ) -> AsyncIterator[SqlUnitOfWork]:
        async with self._session_factory() as session:
            if session.get_bind().dialect.name == "postgresql":
                # Held until commit/rollback; every statement after it sees
                # rows committed by the previous holder
                await session.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": advisory_lock_key(stylist_id, booking_date)},
                )
                logger.debug(
                    f"Acquired booking lock for stylist {stylist_id} on {booking_date}",
                    extra={"stylist_id": str(stylist_id)},
                )
            try:
                yield SqlUnitOfWork(session)
            except DBAPIError as e:
                if _sqlstate(e) not in RETRYABLE_SQLSTATES:
                    raise
                logger.warning(
                    f"Booking for stylist {stylist_id} on {booking_date} lost a concurrent race",
                    extra={"stylist_id": str(stylist_id)},
                )
                raise SlotUnavailableError(
                    "The selected time was just booked by someone else, please retry",
                    details={"reason": "concurrent_booking"},
                ) from e
