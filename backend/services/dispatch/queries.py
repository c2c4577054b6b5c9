"""
Incident Query Engine: filtered, paginated incident lists with responses.

Rows are ordered newest-created first (id breaks ties). created_at never
changes, so an incident inserted after a page was fetched lands ahead of
that page instead of shifting rows the client already has.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from errors import ConflictOrInternalError, NotFoundError, ValidationFailed
from models import Incident, IncidentResponse, IncidentStatus, Responder
from services.dispatch.views import incident_view

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = int(os.environ.get("CALLOUT_LIST_MAX_LIMIT", str(DEFAULT_LIMIT)))


@dataclass(frozen=True)
class IncidentFilter:
    """Conjunctive incident filter. None means "don't filter on this"."""
    status: Optional[IncidentStatus] = None
    group_id: Optional[str] = None

    @classmethod
    def from_params(cls, status: Optional[str] = None, group_id: Optional[str] = None) -> "IncidentFilter":
        parsed_status = None
        if status:
            try:
                parsed_status = IncidentStatus(status)
            except ValueError:
                allowed = ", ".join(s.value for s in IncidentStatus)
                raise ValidationFailed.for_field("status", f"status must be one of: {allowed}")
        return cls(status=parsed_status, group_id=group_id or None)

    def apply(self, query):
        if self.status is not None:
            query = query.filter(Incident.status == self.status.value)
        if self.group_id is not None:
            query = query.filter(Incident.target_group_id == self.group_id)
        return query


@dataclass(frozen=True)
class IncidentPage:
    items: List[dict]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        # Based on the requested window, not the returned row count, so a
        # page past the end reports False
        return self.offset + self.limit < self.total

    def pagination(self) -> dict:
        return {
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "hasMore": self.has_more,
        }


def _coerce_int(name: str, value, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailed.for_field(name, f"{name} must be an integer")


def validate_window(limit=None, offset=None, max_limit: Optional[int] = None) -> tuple:
    max_limit = max_limit or MAX_LIMIT
    limit = _coerce_int("limit", limit, DEFAULT_LIMIT)
    offset = _coerce_int("offset", offset, 0)
    if limit < 1 or limit > max_limit:
        raise ValidationFailed.for_field("limit", f"limit must be between 1 and {max_limit}")
    if offset < 0:
        raise ValidationFailed.for_field("offset", "offset must be 0 or greater")
    return limit, offset


def _member_counts(db: Session, group_ids: Iterable[str]) -> Dict[str, int]:
    group_ids = {g for g in group_ids if g}
    if not group_ids:
        return {}
    rows = (
        db.query(Responder.group_id, func.count(Responder.id))
        .filter(Responder.group_id.in_(group_ids))
        .group_by(Responder.group_id)
        .all()
    )
    counts = {group_id: 0 for group_id in group_ids}
    counts.update({group_id: count for group_id, count in rows})
    return counts


def _with_relations(query):
    return query.options(
        selectinload(Incident.target_area),
        selectinload(Incident.target_group),
        selectinload(Incident.responses).selectinload(IncidentResponse.responder),
    )


def list_incidents(
    db: Session,
    filters: Optional[IncidentFilter] = None,
    limit=DEFAULT_LIMIT,
    offset=0,
    max_limit: Optional[int] = None,
) -> IncidentPage:
    """List incidents newest first with area, group and responses attached."""
    filters = filters or IncidentFilter()
    limit, offset = validate_window(limit, offset, max_limit)

    try:
        query = filters.apply(db.query(Incident))
        total = query.count()
        incidents = (
            _with_relations(query)
            .order_by(Incident.created_at.desc(), Incident.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        counts = _member_counts(db, (i.target_group_id for i in incidents))
        items = [incident_view(i, counts.get(i.target_group_id)) for i in incidents]
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Incident query failed: {e}")
        raise ConflictOrInternalError("Failed to load incidents")

    return IncidentPage(items=items, total=total, limit=limit, offset=offset)


def get_incident(db: Session, incident_id: str) -> dict:
    incident = _with_relations(db.query(Incident)).filter(Incident.id == incident_id).first()
    if not incident:
        raise NotFoundError("Incident not found")
    counts = _member_counts(db, [incident.target_group_id])
    return incident_view(incident, counts.get(incident.target_group_id))
