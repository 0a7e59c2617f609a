"""Court availability (operating hours) model."""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Date, Time, JSON, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class CourtAvailability(Base):
    """Operating hours of a court or of a whole court type.

    Applies either to one specific date or to a recurring weekday. Times are
    wall-clock times in the tenant's timezone; ``breaks`` is a JSON list of
    ``{"start": "HH:MM", "end": "HH:MM"}`` objects.
    """

    __tablename__ = "courts_availabilities"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    court_id = Column(Integer, ForeignKey("courts.id", ondelete="CASCADE"), nullable=True, index=True)
    court_type_id = Column(Integer, ForeignKey("courts_type.id", ondelete="CASCADE"), nullable=True, index=True)
    day_of_week_recurring = Column(String(20), nullable=True, index=True)  # monday..sunday
    specific_date = Column(Date, nullable=True, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)  # Earlier than start_time for overnight hours
    breaks = Column(JSON, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    court = relationship("Court", back_populates="availabilities")
    court_type = relationship("CourtType", back_populates="availabilities")

    __table_args__ = (
        Index("ix_courts_availabilities_tenant_date", "tenant_id", "specific_date"),
    )
