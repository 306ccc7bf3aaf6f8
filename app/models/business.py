# app/models/business.py
"""
Business Model - the tenant that owns calendars
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    owner_user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)

    # System configuration
    timezone = Column(String(50), default="UTC")
    webhook_urls = Column(JSON, default=dict)  # {"booking": "https://..."}

    calendars = relationship(
        "AppointmentCalendar",
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # Technical fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "name": self.name,
            "timezone": self.timezone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "is_active": self.is_active,
        }
