# app/services/business/business_service.py
"""Resolves which business a user acts for and with which role"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from app.core.exceptions import PermissionDeniedError
from app.models.business import Business
from app.models.user import BusinessRole, user_business_association
from app.schemas.business import BusinessContext

logger = logging.getLogger(__name__)


class BusinessService:
    """Handles business membership lookups"""

    @staticmethod
    def get_user_role_in_business(
            db: Session,
            user_id: UUID,
            business_id: UUID
    ) -> Optional[BusinessRole]:
        """Get the user's role in a specific business."""
        result = db.execute(
            select(user_business_association.c.role).where(
                user_business_association.c.user_id == user_id,
                user_business_association.c.business_id == business_id
            )
        ).first()

        return result[0] if result else None

    @staticmethod
    def get_business_context(db: Session, user_id: UUID) -> Optional[BusinessContext]:
        """
        Business the user acts for.

        A business the user owns wins; otherwise the earliest membership is
        used. Roles other than owner/admin are treated as guest.
        """
        owned = db.query(Business).filter(
            Business.owner_user_id == user_id,
            Business.is_active == True
        ).order_by(Business.created_at.asc()).first()

        if owned:
            return BusinessContext(
                user_id=user_id,
                business_id=owned.id,
                business_name=owned.name,
                timezone=owned.timezone or "UTC",
                role=BusinessRole.OWNER
            )

        membership = db.execute(
            select(Business, user_business_association.c.role)
            .join(user_business_association, user_business_association.c.business_id == Business.id)
            .where(
                user_business_association.c.user_id == user_id,
                Business.is_active == True
            )
            .order_by(user_business_association.c.created_at.asc())
        ).first()

        if not membership:
            logger.info(f"User {user_id} is not a member of any business")
            return None

        business, role = membership
        if role not in (BusinessRole.OWNER, BusinessRole.ADMIN):
            role = BusinessRole.GUEST

        return BusinessContext(
            user_id=user_id,
            business_id=business.id,
            business_name=business.name,
            timezone=business.timezone or "UTC",
            role=role
        )

    @staticmethod
    def ensure_can_manage(context: BusinessContext) -> None:
        """Guests can read but never change calendars or bookings"""
        if not context.can_manage:
            logger.warning(f"Blocked mutating call by guest {context.user_id} in business {context.business_id}")
            raise PermissionDeniedError("Only owners and admins can change calendars and bookings")
