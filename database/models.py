"""
SQLAlchemy ORM models for the salon booking database.

This module defines the tables:
- stylists: Salon professionals that can be booked
- customers: Salon customers with contact info
- services: Catalog services with price and duration
- stylist_schedules: Recurring weekly availability windows per stylist
- reservations: Committed bookings with an embedded service snapshot

All models use:
- UUID primary keys (auto-generated)
- TIMESTAMP WITH TIME ZONE for audit fields
- Portable column types (Uuid, JSON, Date, Time) so the same schema runs on
  PostgreSQL in production and SQLite in tests
- Soft delete via deleted_at where rows must survive for reporting
"""

from datetime import UTC, date, datetime, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    Uuid,
    text,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from scheduling.models import ReservationStatus


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ============================================================================
# Base Class
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ============================================================================
# Catalog Models
# ============================================================================


class Stylist(Base):
    """
    Stylist model - The schedulable resource.

    Weekly availability lives in stylist_schedules; bookings in reservations.
    """

    __tablename__ = "stylists"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    specialty: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, index=True
    )

    schedules: Mapped[list["StylistSchedule"]] = relationship(
        "StylistSchedule", back_populates="stylist"
    )

    def __repr__(self) -> str:
        return f"<Stylist(id={self.id}, name='{self.name}')>"


class Customer(Base):
    """Customer model - Profile used as fallback for reservation contact fields."""

    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name='{self.name}')>"


class Service(Base):
    """Service model - Catalog entry with price and duration."""

    __tablename__ = "services"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="haircut")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, index=True
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_service_duration_positive"),
        CheckConstraint("price >= 0", name="check_service_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}')>"


# ============================================================================
# Scheduling Models
# ============================================================================


class StylistSchedule(Base):
    """
    Recurring weekly availability window for one stylist on one weekday.

    Day of week: 0=Sunday, 1=Monday, ..., 6=Saturday

    Deleting a window sets deleted_at and clears is_active; the partial
    unique index only covers live rows, so the weekday can be set again.
    """

    __tablename__ = "stylist_schedules"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    stylist_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("stylists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    stylist: Mapped["Stylist"] = relationship("Stylist", back_populates="schedules")

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="valid_schedule_day_of_week"),
        CheckConstraint("start_time < end_time", name="check_schedule_start_before_end"),
        Index("idx_stylist_schedules_stylist_day", "stylist_id", "day_of_week"),
        # At most one live window per stylist and weekday
        Index(
            "uq_stylist_schedules_active_day",
            "stylist_id",
            "day_of_week",
            unique=True,
            postgresql_where=text("is_active = true AND deleted_at IS NULL"),
            sqlite_where=text("is_active = true AND deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<StylistSchedule(stylist_id={self.stylist_id}, day={self.day_of_week}, "
            f"{self.start_time:%H:%M}-{self.end_time:%H:%M})>"
        )


class Reservation(Base):
    """
    Reservation model - Committed booking.

    services holds an ordered JSON list of {id, name, price, duration_minutes}
    snapshots taken at booking time. end_time, duration_minutes and price are
    derived once from that list and never edited independently.
    """

    __tablename__ = "reservations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    customer_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    stylist_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("stylists.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    services: Mapped[list[dict]] = mapped_column(JSON, nullable=False)

    booking_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # values_callable stores the enum .value ("pending") instead of .name
    status: Mapped[ReservationStatus] = mapped_column(
        SQLEnum(
            ReservationStatus,
            name="reservation_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=ReservationStatus.PENDING,
        nullable=False,
        index=True,
    )
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Customer contact (denormalized at booking time)
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, index=True
    )

    customer: Mapped["Customer"] = relationship("Customer")
    stylist: Mapped["Stylist"] = relationship("Stylist")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_reservation_duration_positive"),
        CheckConstraint("start_time < end_time", name="check_reservation_start_before_end"),
        # Conflict checks and slot computation filter on (stylist, date)
        Index("idx_reservations_stylist_date", "stylist_id", "booking_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, stylist_id={self.stylist_id}, "
            f"date={self.booking_date}, status='{self.status.value}')>"
        )
