"""Tenant model."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Tenant(Base):
    """A facility operator owning courts, court types and bookings."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    timezone = Column(String, nullable=True, default="UTC")  # IANA zone of the facility
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    court_types = relationship("CourtType", back_populates="tenant", cascade="all, delete-orphan")
    courts = relationship("Court", back_populates="tenant", cascade="all, delete-orphan")
