"""
Pydantic schemas for the caller's business context
"""
from pydantic import BaseModel
from uuid import UUID

from app.models.user import BusinessRole


class BusinessContext(BaseModel):
    """Who is calling, for which business, with which role"""
    user_id: UUID
    business_id: UUID
    business_name: str
    timezone: str = "UTC"
    role: BusinessRole

    @property
    def can_manage(self) -> bool:
        return self.role.can_manage
