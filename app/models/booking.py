# ===== app/models/booking.py =====
from sqlalchemy import Column, String, Text, ForeignKey, CheckConstraint, DDL, Index, Uuid, event, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum
import uuid

from app.models.base import Base
from app.models.types import UTCDateTime
from sqlalchemy.sql import func


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that hold their interval on the calendar
BLOCKING_STATUSES = (BookingStatus.PENDING, BookingStatus.SCHEDULED)

NO_OVERLAP_CONSTRAINT = "appointment_bookings_no_overlap"


class Booking(Base):
    __tablename__ = "appointment_bookings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_booking_interval"),
        Index("idx_appointment_bookings_start", "calendar_id", "start_time"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    calendar_id = Column(
        Uuid,
        ForeignKey("appointment_calendars.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_by_user_id = Column(Uuid, ForeignKey("users.id"), nullable=True)  # NULL for public bookings

    # Guest info
    guest_name = Column(String(200), nullable=False)
    guest_email = Column(String(255), nullable=False)
    guest_timezone = Column(String(64), nullable=True)  # display only
    guest_notes = Column(Text, nullable=True)

    # Interval (UTC)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)

    # Status tracking
    status = Column(
        SQLEnum(
            BookingStatus,
            name="booking_status",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=lambda e: [m.value for m in e]
        ),
        nullable=False,
        default=BookingStatus.SCHEDULED
    )
    cancelled_at = Column(UTCDateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Meeting details
    meeting_url = Column(String(500), nullable=True)
    meeting_location = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    calendar = relationship("AppointmentCalendar", back_populates="bookings")

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def __repr__(self):
        return f"<Booking(id={self.id}, {self.start_time}-{self.end_time}, {self.status.value})>"


# Second line of defence against double booking: PostgreSQL refuses two
# pending/scheduled rows on one calendar whose [start, end) ranges intersect.
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE appointment_bookings ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (calendar_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (status IN ('pending', 'scheduled'))"
    ).execute_if(dialect="postgresql"),
)
