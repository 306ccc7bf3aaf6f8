"""
Calendar location descriptor.

Storage keeps three flat columns (location_type, location_details,
virtual_meeting_preference); everywhere else a location is one of the tagged
variants below, discriminated by ``kind``.
"""
import enum
from typing import Annotated, Optional, Union, Literal, Dict, Any

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class LocationKind(str, enum.Enum):
    IN_PERSON = "in_person"
    VIRTUAL = "virtual"
    PHONE = "phone"
    CUSTOM = "custom"


def _is_url(value: Optional[str]) -> bool:
    return bool(value) and value.lower().startswith(("http://", "https://"))


class _LocationBase(BaseModel):
    details: Optional[str] = Field(None, max_length=500)

    @field_validator("details", mode="after")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    def meeting_url(self) -> Optional[str]:
        return None


class InPersonLocation(_LocationBase):
    kind: Literal["in_person"] = "in_person"

    def summary(self) -> str:
        return self.details or "In-person meeting"


class VirtualLocation(_LocationBase):
    kind: Literal["virtual"] = "virtual"
    provider: Optional[str] = Field(None, max_length=200, description="Preferred meeting provider or link")

    @field_validator("provider", mode="after")
    @classmethod
    def blank_provider_to_none(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    def summary(self) -> str:
        base = self.provider or "Virtual meeting"
        if self.details:
            return f"{base} · {self.details}"
        return base

    def meeting_url(self) -> Optional[str]:
        if _is_url(self.details):
            return self.details
        if _is_url(self.provider):
            return self.provider
        return None


class PhoneLocation(_LocationBase):
    kind: Literal["phone"] = "phone"

    def summary(self) -> str:
        return self.details or "Phone call"


class CustomLocation(_LocationBase):
    kind: Literal["custom"] = "custom"

    def summary(self) -> str:
        return self.details or "Details to follow"


Location = Annotated[
    Union[InPersonLocation, VirtualLocation, PhoneLocation, CustomLocation],
    Field(discriminator="kind"),
]

_location_adapter = TypeAdapter(Location)


def location_from_columns(
        kind: str,
        details: Optional[str],
        virtual_meeting_preference: Optional[str]
) -> Location:
    """Build the tagged variant from the stored columns"""
    data: Dict[str, Any] = {"kind": kind, "details": details}
    if kind == LocationKind.VIRTUAL.value:
        data["provider"] = virtual_meeting_preference
    return _location_adapter.validate_python(data)


def location_to_columns(location: Location) -> Dict[str, Optional[str]]:
    """Flatten a variant into the stored columns"""
    return {
        "location_type": location.kind,
        "location_details": location.details,
        "virtual_meeting_preference": getattr(location, "provider", None),
    }
