"""Court model."""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Court(Base):
    """Represents a bookable court of a tenant."""

    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    court_type_id = Column(Integer, ForeignKey("courts_type.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    number = Column(Integer, nullable=True)
    status = Column(Boolean, nullable=False, default=True)  # False hides the court
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    tenant = relationship("Tenant", back_populates="courts")
    court_type = relationship("CourtType", back_populates="courts")
    availabilities = relationship(
        "CourtAvailability", back_populates="court", cascade="all, delete-orphan"
    )
    bookings = relationship("Booking", back_populates="court", cascade="all, delete-orphan")
