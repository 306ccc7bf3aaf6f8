# ===== app/models/appointment_calendar.py =====
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.models.base import Base
from app.schemas.location import location_from_columns, location_to_columns


class AppointmentCalendar(Base):
    """A bookable schedule owned by one business"""
    __tablename__ = "appointment_calendars"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_calendar_duration_positive"),
        CheckConstraint(
            "buffer_before_minutes >= 0 AND buffer_after_minutes >= 0",
            name="ck_calendar_buffers_non_negative"
        ),
        CheckConstraint("booking_window_days > 0", name="ck_calendar_window_positive"),
        CheckConstraint("min_schedule_notice_minutes >= 0", name="ck_calendar_notice_non_negative"),
        CheckConstraint(
            "location_type IN ('in_person', 'virtual', 'phone', 'custom')",
            name="ck_calendar_location_type"
        ),
        CheckConstraint("status IN ('active', 'inactive')", name="ck_calendar_status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    # Display
    name = Column(String(200), nullable=False)
    appointment_type = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Location (see app.schemas.location for the tagged variant)
    location_type = Column(String(20), nullable=False, default="virtual")
    location_details = Column(Text, nullable=True)
    virtual_meeting_preference = Column(String(200), nullable=True)

    # Scheduling configuration
    duration_minutes = Column(Integer, nullable=False, default=30)
    buffer_before_minutes = Column(Integer, nullable=False, default=0)
    buffer_after_minutes = Column(Integer, nullable=False, default=0)
    timezone = Column(String(64), nullable=False, default="UTC")
    booking_window_days = Column(Integer, nullable=False, default=30)
    min_schedule_notice_minutes = Column(Integer, nullable=False, default=120)
    requires_confirmation = Column(Boolean, nullable=False, default=False)
    google_calendar_sync = Column(Boolean, nullable=False, default=False)

    # Public share link
    share_id = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(20), nullable=False, default="active")  # active, inactive

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="calendars")
    availability_rules = relationship(
        "AvailabilityRule",
        back_populates="calendar",
        cascade="all, delete-orphan",
    )
    bookings = relationship(
        "Booking",
        back_populates="calendar",
        cascade="all, delete-orphan",
    )

    @property
    def location(self):
        return location_from_columns(
            self.location_type,
            self.location_details,
            self.virtual_meeting_preference
        )

    @location.setter
    def location(self, value):
        for column, column_value in location_to_columns(value).items():
            setattr(self, column, column_value)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self):
        return f"<AppointmentCalendar(id={self.id}, name={self.name})>"
