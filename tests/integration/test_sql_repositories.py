"""
Integration tests for database/repositories.py on SQLite (aiosqlite).

Covers the SQLAlchemy store end to end through the engine's public
operations: booking, slot computation, gated status updates, soft delete,
search/paging and schedule windows.
"""

from contextlib import asynccontextmanager
from datetime import date, time
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError

from database.models import Customer, Service, Stylist, StylistSchedule
from database.models import Reservation as ReservationRow
from database.repositories import (
    RETRYABLE_SQLSTATES,
    SqlSchedulingStore,
    _sqlstate,
    advisory_lock_key,
)
from fakes import MONDAY
from scheduling.errors import (
    InvalidServiceError,
    NotFoundError,
    ScheduleConflictError,
    SlotUnavailableError,
)
from scheduling.models import Principal, ReservationStatus, Role, WeeklyAvailabilityWindow
from scheduling.services import reservation_service
from scheduling.services.availability_service import get_available_slots
from scheduling.transactions import BookingTransaction
from scheduling.utils.time_utils import format_hhmm


@pytest.fixture
async def seeded(sql_session_factory):
    """One stylist (Mon 09:00-17:00), one customer, two services."""
    async with sql_session_factory() as session:
        stylist = Stylist(name="Ana")
        customer = Customer(name="Lin", phone="0912345678", email="lin@example.com")
        cut = Service(name="Cut", price=Decimal("30.00"), duration_minutes=30)
        color = Service(name="Color", price=Decimal("45.50"), duration_minutes=45)
        session.add_all([stylist, customer, cut, color])
        await session.flush()
        session.add(
            StylistSchedule(
                stylist_id=stylist.id, day_of_week=1, start_time=time(9, 0), end_time=time(17, 0)
            )
        )
        await session.commit()
        return {
            "stylist_id": stylist.id,
            "customer_id": customer.id,
            "cut_id": cut.id,
            "color_id": color.id,
        }


async def _book(sql_store, seeded, service_ids, start, booking_date=MONDAY):
    return await BookingTransaction.execute(
        sql_store,
        customer_id=seeded["customer_id"],
        stylist_id=seeded["stylist_id"],
        service_ids=service_ids,
        booking_date=booking_date,
        start_time=start,
    )


class TestSqlBooking:
    @pytest.mark.asyncio
    async def test_booking_round_trip(self, sql_store, seeded, sql_session_factory):
        reservation = await _book(
            sql_store, seeded, [seeded["cut_id"], seeded["color_id"]], time(14, 0)
        )

        assert reservation.end_time == time(15, 15)
        assert reservation.duration_minutes == 75
        assert reservation.price == Decimal("75.50")
        assert reservation.customer_email == "lin@example.com"

        async with sql_session_factory() as session:
            row = await session.get(ReservationRow, reservation.id)
            assert row.status == ReservationStatus.PENDING
            assert [item["name"] for item in row.services] == ["Cut", "Color"]
            assert row.services[1]["price"] == "45.50"

    @pytest.mark.asyncio
    async def test_overlap_rejected_and_nothing_written(
        self, sql_store, seeded, sql_session_factory
    ):
        await _book(sql_store, seeded, [seeded["color_id"]], time(10, 0))

        with pytest.raises(SlotUnavailableError):
            await _book(sql_store, seeded, [seeded["cut_id"]], time(10, 30))

        async with sql_session_factory() as session:
            rows = (await session.execute(select(ReservationRow))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_inactive_service_rejected(self, sql_store, seeded, sql_session_factory):
        async with sql_session_factory() as session:
            service = await session.get(Service, seeded["cut_id"])
            service.is_active = False
            await session.commit()

        with pytest.raises(InvalidServiceError):
            await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0))

    @pytest.mark.asyncio
    async def test_catalog_edit_does_not_change_booking(
        self, sql_store, seeded, sql_session_factory
    ):
        reservation = await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0))

        async with sql_session_factory() as session:
            service = await session.get(Service, seeded["cut_id"])
            service.price = Decimal("99.00")
            service.duration_minutes = 90
            await session.commit()

        admin = Principal(user_id=seeded["customer_id"], role=Role.ADMIN)
        stored = await reservation_service.get_booking(sql_store, admin, reservation.id)
        assert stored.price == Decimal("30.00")
        assert stored.end_time == time(9, 30)


class TestSqlSlots:
    @pytest.mark.asyncio
    async def test_slots_reflect_bookings(self, sql_store, seeded):
        await _book(sql_store, seeded, [seeded["color_id"]], time(10, 0))  # 10:00-10:45

        slots = await get_available_slots(sql_store, seeded["stylist_id"], MONDAY, 30)
        by_time = {format_hhmm(s.start_time): s.available for s in slots}

        assert by_time["09:30"] is True  # 09:30-10:00 touches
        assert by_time["10:00"] is False
        assert by_time["10:30"] is False  # 10:30-11:00 overlaps 10:45
        assert by_time["11:00"] is True
        assert format_hhmm(slots[-1].start_time) == "16:30"

    @pytest.mark.asyncio
    async def test_no_window_on_sunday(self, sql_store, seeded):
        assert await get_available_slots(sql_store, seeded["stylist_id"], date(2025, 3, 9), 30) == []


class TestSqlLifecycle:
    @pytest.mark.asyncio
    async def test_gated_update_status(self, sql_store, seeded):
        reservation = await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0))

        async with sql_store.unit_of_work() as uow:
            stale = await uow.reservations.update_status(
                reservation.id, expected=ReservationStatus.CONFIRMED, new=ReservationStatus.COMPLETED
            )
            updated = await uow.reservations.update_status(
                reservation.id, expected=ReservationStatus.PENDING, new=ReservationStatus.CONFIRMED
            )
            await uow.commit()

        assert stale is None
        assert updated.status == ReservationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_cancel_then_rebook_same_slot(self, sql_store, seeded):
        owner = Principal(user_id=seeded["customer_id"])
        first = await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0))

        cancelled = await reservation_service.cancel_booking(sql_store, owner, first.id)
        second = await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0))

        assert cancelled.status == ReservationStatus.CANCELLED
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_soft_delete_hides_row(self, sql_store, seeded, sql_session_factory):
        admin = Principal(user_id=seeded["customer_id"], role=Role.ADMIN)
        reservation = await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0))

        await reservation_service.delete_booking(sql_store, admin, reservation.id)

        items, total = await reservation_service.list_bookings(sql_store, admin)
        assert total == 0 and items == []
        async with sql_session_factory() as session:
            row = await session.get(ReservationRow, reservation.id)
            assert row.deleted_at is not None

        # The freed slot is bookable again
        await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0))

    @pytest.mark.asyncio
    async def test_search_ordering_and_customer_filter(self, sql_store, seeded):
        for day in (10, 17, 24):
            await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0), date(2025, 3, day))
        await _book(sql_store, seeded, [seeded["cut_id"]], time(11, 0), date(2025, 3, 24))

        customer = Principal(user_id=seeded["customer_id"])
        items, total = await reservation_service.list_bookings(sql_store, customer, limit=3)

        assert total == 4
        assert [(r.booking_date.day, format_hhmm(r.start_time)) for r in items] == [
            (24, "11:00"),
            (24, "09:00"),
            (17, "09:00"),
        ]

    @pytest.mark.asyncio
    async def test_list_by_customer_upcoming(self, sql_store, seeded):
        owner = Principal(user_id=seeded["customer_id"])
        await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0), date(2025, 3, 10))
        later = await _book(sql_store, seeded, [seeded["cut_id"]], time(9, 0), date(2025, 3, 17))

        upcoming = await reservation_service.list_customer_bookings(
            sql_store, owner, upcoming_only=True, today=date(2025, 3, 10)
        )
        assert [r.id for r in upcoming] == [later.id]


class TestSqlSchedules:
    @pytest.mark.asyncio
    async def test_add_and_list_windows(self, sql_store, seeded):
        admin = Principal(user_id=seeded["customer_id"], role=Role.ADMIN)

        added = await reservation_service.add_schedule_window(
            sql_store, admin, seeded["stylist_id"], 3, time(12, 0), time(20, 0)
        )
        windows = await reservation_service.list_schedule_windows(sql_store, seeded["stylist_id"])

        assert added.id is not None
        assert [(w.day_of_week, w.start_time, w.end_time) for w in windows] == [
            (1, time(9, 0), time(17, 0)),
            (3, time(12, 0), time(20, 0)),
        ]

    @pytest.mark.asyncio
    async def test_unique_index_rejects_second_live_window(
        self, sql_store, seeded, sql_session_factory
    ):
        # Skips the service-level check, as a racing insert would
        with pytest.raises(ScheduleConflictError):
            async with sql_store.unit_of_work() as uow:
                await uow.schedules.add_window(
                    WeeklyAvailabilityWindow(
                        stylist_id=seeded["stylist_id"],
                        day_of_week=1,
                        start_time=time(18, 0),
                        end_time=time(20, 0),
                    )
                )
                await uow.commit()

        async with sql_session_factory() as session:
            rows = (await session.execute(select(StylistSchedule))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_delete_then_readd_same_weekday(self, sql_store, seeded, sql_session_factory):
        admin = Principal(user_id=seeded["customer_id"], role=Role.ADMIN)
        monday = (
            await reservation_service.list_schedule_windows(sql_store, seeded["stylist_id"])
        )[0]

        await reservation_service.delete_schedule_window(sql_store, admin, monday.id)
        assert await get_available_slots(sql_store, seeded["stylist_id"], MONDAY, 30) == []

        await reservation_service.add_schedule_window(
            sql_store, admin, seeded["stylist_id"], 1, time(10, 0), time(18, 0)
        )
        slots = await get_available_slots(sql_store, seeded["stylist_id"], MONDAY, 30)
        assert format_hhmm(slots[0].start_time) == "10:00"

        async with sql_session_factory() as session:
            old = await session.get(StylistSchedule, monday.id)
            assert old.deleted_at is not None
            assert old.is_active is False

    @pytest.mark.asyncio
    async def test_delete_unknown_window(self, sql_store, seeded):
        admin = Principal(user_id=seeded["customer_id"], role=Role.ADMIN)

        with pytest.raises(NotFoundError):
            await reservation_service.delete_schedule_window(sql_store, admin, uuid4())


class TestLockHelpers:
    def test_advisory_lock_key_is_stable_signed_64bit(self):
        stylist_id = UUID("660e8400-e29b-41d4-a716-446655440001")
        key = advisory_lock_key(stylist_id, MONDAY)

        assert key == advisory_lock_key(stylist_id, MONDAY)
        assert key != advisory_lock_key(stylist_id, date(2025, 3, 11))
        assert -(2**63) <= key < 2**63

    @pytest.mark.parametrize("code", sorted(RETRYABLE_SQLSTATES))
    def test_sqlstate_extraction(self, code):
        orig = MagicMock()
        orig.sqlstate = code
        error = DBAPIError("COMMIT", {}, orig)

        assert _sqlstate(error) == code


def _mock_session_factory(dialect_name):
    session = MagicMock()
    session.get_bind.return_value.dialect.name = dialect_name
    session.execute = AsyncMock()

    @asynccontextmanager
    async def factory():
        yield session

    return session, factory


class TestBookingUnitOfWork:
    @pytest.mark.asyncio
    async def test_postgres_takes_advisory_lock(self):
        session, factory = _mock_session_factory("postgresql")
        stylist_id = uuid4()

        async with SqlSchedulingStore(session_factory=factory).booking_unit_of_work(
            stylist_id, MONDAY
        ):
            pass

        stmt, params = session.execute.await_args.args
        assert "pg_advisory_xact_lock" in str(stmt)
        assert params == {"key": advisory_lock_key(stylist_id, MONDAY)}

    @pytest.mark.asyncio
    async def test_sqlite_skips_lock(self):
        session, factory = _mock_session_factory("sqlite")

        async with SqlSchedulingStore(session_factory=factory).booking_unit_of_work(
            uuid4(), MONDAY
        ):
            pass

        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", sorted(RETRYABLE_SQLSTATES))
    async def test_serialization_failure_becomes_slot_unavailable(self, code):
        _, factory = _mock_session_factory("postgresql")
        orig = MagicMock()
        orig.sqlstate = code

        with pytest.raises(SlotUnavailableError) as exc_info:
            async with SqlSchedulingStore(session_factory=factory).booking_unit_of_work(
                uuid4(), MONDAY
            ):
                raise DBAPIError("COMMIT", {}, orig)

        assert exc_info.value.details == {"reason": "concurrent_booking"}

    @pytest.mark.asyncio
    async def test_other_database_errors_propagate(self):
        _, factory = _mock_session_factory("postgresql")
        orig = MagicMock()
        orig.sqlstate = "23505"

        with pytest.raises(DBAPIError):
            async with SqlSchedulingStore(session_factory=factory).booking_unit_of_work(
                uuid4(), MONDAY
            ):
                raise DBAPIError("INSERT", {}, orig)
