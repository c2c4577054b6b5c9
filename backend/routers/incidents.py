"""
Incidents router - call-out creation, listing and responder responses

- POST /                 - Create incident, page the target group
- GET  /                 - List incidents (status/groupId filters, paginated)
- GET  /{id}             - Single incident with responses
- POST /{id}/response    - Report (or update) my response to an incident
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from database import get_db
from jwt_auth import TokenClaims, get_current_claims
from schemas_incidents import IncidentCreate, ResponseSubmit
from services.dispatch.ledger import RESUBMIT_POLICY, ResubmitPolicy
from services.dispatch.notifier import Notifier, deliver_callout
from services.dispatch.orchestrator import create_incident as dispatch_incident, respond
from services.dispatch.queries import IncidentFilter, get_incident as load_incident, list_incidents as query_incidents

logger = logging.getLogger(__name__)
router = APIRouter()


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_resubmit_policy() -> ResubmitPolicy:
    return RESUBMIT_POLICY


# =============================================================================
# CREATE INCIDENT
# =============================================================================

@router.post("", status_code=201)
async def create_incident(
    data: IncidentCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Create new incident. Members of the resolved target group are paged."""
    incident, callout = dispatch_incident(db, data)

    if callout is not None:
        # Runs after the response is sent; failures are logged, never raised
        background_tasks.add_task(deliver_callout, notifier, callout)

    return {"success": True, "incident": incident}


# =============================================================================
# INCIDENT LIST
# =============================================================================

@router.get("")
async def list_incidents(
    status: Optional[str] = None,
    group_id: Optional[str] = Query(None, alias="groupId"),
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List incidents, newest first"""
    filters = IncidentFilter.from_params(status=status, group_id=group_id)
    page = query_incidents(db, filters, limit=limit, offset=offset)

    return {
        "success": True,
        "items": page.items,
        "pagination": page.pagination(),
    }


@router.get("/{incident_id}")
async def get_incident(incident_id: str, db: Session = Depends(get_db)):
    """Get single incident with area, group and responses"""
    return {"success": True, "incident": load_incident(db, incident_id)}


# =============================================================================
# RESPONSES
# =============================================================================

@router.post("/{incident_id}/response")
async def submit_response(
    incident_id: str,
    data: ResponseSubmit,
    claims: TokenClaims = Depends(get_current_claims),
    policy: ResubmitPolicy = Depends(get_resubmit_policy),
    db: Session = Depends(get_db),
):
    """
    Report how the logged-in responder is responding.
    Submitting again replaces the previous report.
    """
    response = respond(db, incident_id, claims.responder_id, data, policy=policy)

    return {
        "success": True,
        "response": response,
        "message": "Response recorded",
    }
