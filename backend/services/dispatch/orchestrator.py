"""
Dispatch Orchestrator: incident creation and response submission.

create_incident: validate -> resolve target once -> persist -> build call-out
respond:         load incident + responder -> authorize -> ledger upsert
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ConflictOrInternalError, NotFoundError
from models import Group, Incident, IncidentStatus, Responder
from schemas_incidents import IncidentCreate, ResponseSubmit
from services.dispatch.authorization import ensure_can_respond
from services.dispatch.ledger import ResubmitPolicy, submit_response
from services.dispatch.notifier import Callout
from services.dispatch.targeting import find_area, resolve_target
from services.dispatch.views import incident_view

logger = logging.getLogger(__name__)


def find_incident(db: Session, incident_id: str) -> Optional[Incident]:
    return db.get(Incident, incident_id)


def find_responder(db: Session, responder_id: str) -> Optional[Responder]:
    return db.get(Responder, responder_id)


def _member_ids(db: Session, group_id: str) -> list:
    rows = (
        db.query(Responder.id)
        .filter(Responder.group_id == group_id)
        .order_by(Responder.id)
        .all()
    )
    return [r[0] for r in rows]


def create_incident(db: Session, data: IncidentCreate) -> Tuple[dict, Optional[Callout]]:
    """
    Create an incident routed to its target group.

    Returns:
        (incident dict, call-out to hand to the notifier or None)
    """
    target_group_id = resolve_target(db, data.target_group_id, data.target_area_id)

    group = None
    if target_group_id:
        group = db.get(Group, target_group_id)
        if group is None:
            raise NotFoundError(f"Target group {target_group_id} not found")

    # An unknown area is dropped rather than stored as a dangling reference
    area = find_area(db, data.target_area_id) if data.target_area_id else None

    incident = Incident(
        title=data.title,
        description=data.description,
        location=data.location,
        latitude=data.latitude,
        longitude=data.longitude,
        emergency_type=data.emergency_type.value,
        severity=data.severity.value,
        status=IncidentStatus.ACTIVE.value,
        target_area_id=area.id if area else None,
        target_group_id=target_group_id,
        created_at=datetime.now(timezone.utc),
    )

    try:
        db.add(incident)
        db.flush()
        member_ids = _member_ids(db, target_group_id) if target_group_id else []
        result = incident_view(incident, len(member_ids) if group else None, include_responses=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create incident '{data.title}': {e}")
        raise ConflictOrInternalError("Failed to create incident", conflict=isinstance(e, IntegrityError))

    logger.info(
        f"Created incident {result['id']} ({data.emergency_type.value}/{data.severity.value}) "
        f"target group: {target_group_id or 'none'}"
    )

    callout = None
    if group is not None:
        callout = Callout(
            incident_id=result["id"],
            incident_title=data.title,
            severity=data.severity.value,
            group_id=group.id,
            group_name=group.name,
            member_ids=member_ids,
        )
    return result, callout


def respond(
    db: Session,
    incident_id: str,
    responder_id: str,
    submission: ResponseSubmit,
    policy: Optional[ResubmitPolicy] = None,
) -> dict:
    """Authorize and record a responder's response to an incident."""
    incident = find_incident(db, incident_id)
    if not incident:
        raise NotFoundError("Incident not found")

    responder = find_responder(db, responder_id)
    if not responder:
        raise NotFoundError("Responder not found")

    ensure_can_respond(incident, responder)

    return submit_response(
        db,
        incident_id=incident.id,
        responder_id=responder.id,
        mode=submission.response_type,
        estimated_arrival=submission.estimated_arrival,
        notes=submission.notes,
        policy=policy,
    )
