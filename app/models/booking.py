"""Booking model."""
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Time, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    """A reservation of a court by a user.

    Dates and times are stored in UTC. ``end_date`` follows ``start_date``
    when the booking crosses UTC midnight.
    """

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    court_id = Column(Integer, ForeignKey("courts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_date = Column(Date, nullable=False)
    end_time = Column(Time, nullable=False)
    price = Column(Integer, nullable=False, default=0)  # In cents
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    court = relationship("Court", back_populates="bookings")
    user = relationship("User", back_populates="bookings")

    # One active booking per court start instant, enforced by the database
    # so that two concurrent writers cannot both commit the same slot.
    __table_args__ = (
        Index("ix_bookings_court_date", "court_id", "start_date"),
        Index(
            "uq_bookings_active_slot",
            "court_id",
            "start_date",
            "start_time",
            unique=True,
            postgresql_where=text("status IN ('pending', 'confirmed')"),
            sqlite_where=text("status IN ('pending', 'confirmed')"),
        ),
    )
