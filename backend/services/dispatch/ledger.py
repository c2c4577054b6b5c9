"""
Response Ledger: exactly one response row per (incident, responder).

Submissions are written with a single INSERT ... ON CONFLICT DO UPDATE so
two concurrent submissions from the same responder collapse onto one row;
whichever commits last is what readers see.

Resubmission policy (CALLOUT_RESUBMIT_POLICY):
    reset    - status goes back to enroute on every submission (default)
    preserve - a status already advanced past enroute (on_scene, released)
               by another process is kept; only the response details change
"""

import enum
import logging
import os
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from errors import ConflictOrInternalError, ValidationFailed
from models import IncidentResponse, ResponseStatus, ResponseType, new_id
from services.dispatch.views import response_view

logger = logging.getLogger(__name__)


class ResubmitPolicy(str, enum.Enum):
    RESET = "reset"
    PRESERVE = "preserve"


RESUBMIT_POLICY = ResubmitPolicy(os.environ.get("CALLOUT_RESUBMIT_POLICY", ResubmitPolicy.RESET.value))


_UPSERT_SQL = """
    INSERT INTO incident_responses
        (id, incident_id, responder_id, response_type, estimated_arrival,
         notes, status, created_at, updated_at)
    VALUES (:id, :incident_id, :responder_id, :response_type, :eta,
            :notes, :status, :now, :now)
    ON CONFLICT (incident_id, responder_id) DO UPDATE SET
        response_type = EXCLUDED.response_type,
        estimated_arrival = EXCLUDED.estimated_arrival,
        notes = EXCLUDED.notes,
        updated_at = EXCLUDED.updated_at{status_clause}
"""


def _upsert_statement(policy: ResubmitPolicy):
    if policy is ResubmitPolicy.RESET:
        status_clause = ",\n        status = EXCLUDED.status"
    elif policy is ResubmitPolicy.PRESERVE:
        # ENROUTE is the lowest status, so any stored status is already >= it
        status_clause = ""
    else:
        raise ValueError(f"Unhandled resubmit policy: {policy}")

    return text(_UPSERT_SQL.format(status_clause=status_clause)).bindparams(
        bindparam("eta", type_=DateTime(timezone=True)),
        bindparam("now", type_=DateTime(timezone=True)),
    )


def parse_response_type(mode: Union[ResponseType, str]) -> ResponseType:
    try:
        return ResponseType(mode)
    except ValueError:
        allowed = ", ".join(m.value for m in ResponseType)
        raise ValidationFailed.for_field("responseType", f"responseType must be one of: {allowed}")


def parse_estimated_arrival(value: Union[datetime, str, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        raise ValidationFailed.for_field("estimatedArrival", f"Invalid timestamp: {value!r}")


def find_response(db: Session, incident_id: str, responder_id: str) -> Optional[IncidentResponse]:
    return (
        db.query(IncidentResponse)
        .options(joinedload(IncidentResponse.responder))
        .filter(
            IncidentResponse.incident_id == incident_id,
            IncidentResponse.responder_id == responder_id,
        )
        .first()
    )


def submit_response(
    db: Session,
    incident_id: str,
    responder_id: str,
    mode: Union[ResponseType, str],
    estimated_arrival: Union[datetime, str, None] = None,
    notes: Optional[str] = None,
    policy: Optional[ResubmitPolicy] = None,
) -> dict:
    """
    Record (or re-confirm) a responder's response to an incident.

    Authorization is the caller's job (see orchestrator.respond). Input is
    validated before anything is written.

    Returns:
        Response dict including the responder's id and name
    """
    response_type = parse_response_type(mode)
    eta = parse_estimated_arrival(estimated_arrival)
    policy = policy or RESUBMIT_POLICY

    try:
        db.execute(_upsert_statement(policy), {
            "id": new_id(),
            "incident_id": incident_id,
            "responder_id": responder_id,
            "response_type": response_type.value,
            "eta": eta,
            "notes": notes,
            "status": ResponseStatus.ENROUTE.value,
            "now": datetime.now(timezone.utc),
        })
        # Read back inside the same transaction so the caller sees its own write
        db.expire_all()
        row = find_response(db, incident_id, responder_id)
        result = response_view(row)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to record response {responder_id} -> {incident_id}: {e}")
        raise ConflictOrInternalError("Failed to record response", conflict=isinstance(e, IntegrityError))

    logger.info(
        f"Response recorded: responder {responder_id} -> incident {incident_id} "
        f"({response_type.value}, status {result['status']})"
    )
    return result
