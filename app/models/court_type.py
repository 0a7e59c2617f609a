"""Court type model."""
import enum

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class CourtTypeEnum(str, enum.Enum):
    FOOTBALL = "football"
    BASKETBALL = "basketball"
    TENNIS = "tennis"
    SQUASH = "squash"
    BADMINTON = "badminton"
    PADEL = "padel"
    OTHER = "other"


class CourtType(Base):
    """Groups courts sharing slot granularity, buffer and default hours."""

    __tablename__ = "courts_type"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False, default=CourtTypeEnum.PADEL.value, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    interval_time_minutes = Column(Integer, nullable=False)  # Slot length
    buffer_time_minutes = Column(Integer, nullable=False, default=0)  # Idle gap after each booking
    price_per_interval = Column(Integer, nullable=False, default=0)  # In cents
    status = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    tenant = relationship("Tenant", back_populates="court_types")
    courts = relationship("Court", back_populates="court_type")
    availabilities = relationship(
        "CourtAvailability", back_populates="court_type", cascade="all, delete-orphan"
    )
