# ============================================================================
# FILE: app/models/user.py
# Users are provisioned by the auth service; this side only reads them and
# resolves their role inside a business.
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, Table, ForeignKey, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum
from app.models.base import Base


class BusinessRole(str, enum.Enum):
    """User roles within a business."""
    OWNER = "owner"
    ADMIN = "admin"
    GUEST = "guest"    # Read-only team member

    @property
    def can_manage(self) -> bool:
        return self in (BusinessRole.OWNER, BusinessRole.ADMIN)


# Association table for many-to-many User <-> Business relationship with roles
user_business_association = Table(
    'user_businesses',
    Base.metadata,
    Column('id', Uuid, primary_key=True, default=uuid.uuid4),
    Column('user_id', Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
    Column('business_id', Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
    Column(
        'role',
        SQLEnum(BusinessRole, name="businessrole", values_callable=lambda e: [m.value for m in e]),
        default=BusinessRole.GUEST,
        nullable=False
    ),
    Column('created_at', DateTime(timezone=True), server_default=func.now())
)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)

    # Status flags
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    businesses = relationship(
        "Business",
        secondary=user_business_association,
        backref="members",
        lazy="selectin"
    )

    def __repr__(self):
        return f"<User {self.email}>"
