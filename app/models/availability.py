# ===== app/models/availability.py =====
from sqlalchemy import Column, String, Integer, Boolean, Date, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from app.models.base import Base
import uuid


class AvailabilityRule(Base):
    """
    Weekly or date-specific availability window for a calendar.

    Minutes are offsets from local midnight in the calendar's time zone.
    Date rules replace the weekly rules for their date; rules flagged
    ``is_unavailable`` are carve-outs subtracted from the available ones.
    """
    __tablename__ = "appointment_availability_rules"
    __table_args__ = (
        CheckConstraint("rule_type IN ('weekly', 'date')", name="ck_rule_type"),
        CheckConstraint(
            "(rule_type = 'weekly' AND day_of_week IS NOT NULL AND specific_date IS NULL) OR "
            "(rule_type = 'date' AND specific_date IS NOT NULL AND day_of_week IS NULL)",
            name="ck_rule_kind_fields"
        ),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_rule_day_of_week"),
        CheckConstraint(
            "start_minutes >= 0 AND end_minutes <= 1440 AND start_minutes < end_minutes",
            name="ck_rule_minutes"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    calendar_id = Column(
        Uuid,
        ForeignKey("appointment_calendars.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    rule_type = Column(String(10), nullable=False)  # weekly, date
    day_of_week = Column(Integer, nullable=True)  # 0=Sunday, 6=Saturday
    specific_date = Column(Date, nullable=True)
    start_minutes = Column(Integer, nullable=False)
    end_minutes = Column(Integer, nullable=False)
    is_unavailable = Column(Boolean, nullable=False, default=False)

    calendar = relationship("AppointmentCalendar", back_populates="availability_rules")

    def __repr__(self):
        target = self.specific_date if self.rule_type == "date" else self.day_of_week
        return f"<AvailabilityRule({self.rule_type} {target} {self.start_minutes}-{self.end_minutes})>"
