"""
Authorization Guard: may this responder report on this incident?

Membership is owned outside dispatch and can change at any time, so the
check runs on every submission against freshly loaded rows.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from errors import ForbiddenError
from models import Incident, Responder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None


ALLOWED = Decision(allowed=True)


def can_respond(incident: Incident, responder: Responder) -> Decision:
    """Both rows must already exist; the caller reports NotFound."""
    if incident.target_group_id is None:
        # Untargeted incidents are open to every authenticated responder
        return ALLOWED

    if responder.group_id == incident.target_group_id:
        return ALLOWED

    if responder.group_id is None:
        reason = "Responder is not a member of any group"
    else:
        reason = "Responder is not a member of the incident's target group"
    return Decision(allowed=False, reason=reason)


def ensure_can_respond(incident: Incident, responder: Responder) -> None:
    decision = can_respond(incident, responder)
    if not decision.allowed:
        logger.warning(
            f"Response denied: responder {responder.id} (group {responder.group_id}) "
            f"-> incident {incident.id} (target group {incident.target_group_id})"
        )
        raise ForbiddenError(decision.reason)
