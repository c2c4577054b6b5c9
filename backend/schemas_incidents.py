"""
Incident / Response Pydantic Schemas

Wire format is camelCase (emergencyType, targetGroupId, ...). Python code
uses the snake_case attribute names; `populate_by_name` accepts either.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

from models import EmergencyType, Severity, ResponseType, Role


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# INCIDENT CREATE
# =============================================================================

class IncidentCreate(CamelModel):
    """Create new incident"""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    location: str = Field(min_length=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    emergency_type: EmergencyType
    severity: Severity
    target_area_id: Optional[str] = None
    target_group_id: Optional[str] = None

    @field_validator("title", "location")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("target_area_id", "target_group_id")
    @classmethod
    def empty_as_none(cls, value: Optional[str]) -> Optional[str]:
        # Forms send "" for an unselected dropdown
        return value or None


# =============================================================================
# RESPONSE SUBMISSION
# =============================================================================

class ResponseSubmit(CamelModel):
    """Responder reporting how (and when) they are coming"""
    response_type: ResponseType
    estimated_arrival: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


# =============================================================================
# RESPONDERS / LOOKUPS
# =============================================================================

class ResponderCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    role: Role = Role.MEMBER
    group_id: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)


class LoginRequest(CamelModel):
    email: str
    password: str


class GroupCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=100)


class AreaCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=100)
    group_id: Optional[str] = None
