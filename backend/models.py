"""
SQLAlchemy models for Callout

Groups own areas and members. Incidents are routed to at most one group,
and each responder holds at most one response per incident.
"""

import enum
import uuid

from sqlalchemy import (
    Column, String, Boolean, Text, Float, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


def new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# ENUMERATIONS
# =============================================================================

class EmergencyType(str, enum.Enum):
    FIRE = "fire"
    RESCUE = "rescue"
    MEDICAL = "medical"
    OTHER = "other"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IncidentStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ResponseType(str, enum.Enum):
    STATION = "station"   # Reports to the group's station first
    DIRECT = "direct"     # Proceeds straight to the scene


class ResponseStatus(str, enum.Enum):
    """Declared in progression order. Only ENROUTE is set by dispatch."""
    ENROUTE = "enroute"
    ON_SCENE = "on_scene"
    RELEASED = "released"


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    LEADER = "LEADER"
    MEMBER = "MEMBER"


def _in_clause(column: str, members) -> str:
    values = ", ".join(f"'{m.value}'" for m in members)
    return f"{column} IN ({values})"


# =============================================================================
# ORGANIZATION
# =============================================================================

class Group(Base):
    """Responder group (squad, station crew) - the routing target for incidents"""
    __tablename__ = "groups"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    members = relationship("Responder", back_populates="group")
    areas = relationship("Area", back_populates="group")


class Area(Base):
    """Geographic zone. Owned by at most one group."""
    __tablename__ = "areas"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("Group", back_populates="areas")


class Responder(Base):
    """Organization member who can report a response to an incident"""
    __tablename__ = "responders"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True)
    role = Column(String(20), nullable=False, default=Role.MEMBER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    password_hash = Column(String(255))
    group_id = Column(String(36), ForeignKey("groups.id", ondelete="SET NULL"), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("Group", back_populates="members")

    __table_args__ = (
        CheckConstraint(_in_clause("role", Role), name="ck_responder_role"),
    )

    @property
    def is_registered(self):
        return self.password_hash is not None


# =============================================================================
# INCIDENT
# =============================================================================

class Incident(Base):
    """
    Emergency call-out.

    target_group_id is resolved once at creation (explicit group, else the
    target area's owning group) and is not changed afterwards by dispatch.
    """
    __tablename__ = "incidents"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    location = Column(Text, nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    emergency_type = Column(String(20), nullable=False)
    severity = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default=IncidentStatus.ACTIVE.value)

    target_area_id = Column(String(36), ForeignKey("areas.id", ondelete="SET NULL"))
    target_group_id = Column(String(36), ForeignKey("groups.id", ondelete="SET NULL"))

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    target_area = relationship("Area")
    target_group = relationship("Group")
    responses = relationship(
        "IncidentResponse",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="IncidentResponse.updated_at",
    )

    __table_args__ = (
        CheckConstraint(_in_clause("emergency_type", EmergencyType), name="ck_incident_type"),
        CheckConstraint(_in_clause("severity", Severity), name="ck_incident_severity"),
        CheckConstraint(_in_clause("status", IncidentStatus), name="ck_incident_status"),
        Index("ix_incident_created", "created_at", "id"),
        Index("ix_incident_group_status", "target_group_id", "status"),
    )


class IncidentResponse(Base):
    """
    One responder's current response to one incident.
    Resubmissions overwrite this row - there is never more than one per pair.
    """
    __tablename__ = "incident_responses"

    id = Column(String(36), primary_key=True, default=new_id)
    incident_id = Column(String(36), ForeignKey("incidents.id", ondelete="CASCADE"), nullable=False)
    responder_id = Column(String(36), ForeignKey("responders.id", ondelete="CASCADE"), nullable=False)

    response_type = Column(String(10), nullable=False)
    estimated_arrival = Column(DateTime(timezone=True))
    notes = Column(Text)
    status = Column(String(20), nullable=False, default=ResponseStatus.ENROUTE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    incident = relationship("Incident", back_populates="responses")
    responder = relationship("Responder")

    __table_args__ = (
        UniqueConstraint("incident_id", "responder_id", name="uq_response_incident_responder"),
        CheckConstraint(_in_clause("response_type", ResponseType), name="ck_response_type"),
        CheckConstraint(_in_clause("status", ResponseStatus), name="ck_response_status"),
    )
