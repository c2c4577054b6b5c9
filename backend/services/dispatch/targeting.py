"""
Targeting Resolver: which group an incident is routed to.

Resolution order:
    1. Explicit group id from the caller (no area lookup at all)
    2. Owning group of the target area
    3. None: the incident is open to every responder

An unknown area, or an area with no owning group, is not an error.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from models import Area

logger = logging.getLogger(__name__)


def find_area(db: Session, area_id: str) -> Optional[Area]:
    return db.get(Area, area_id)


def resolve_target(
    db: Session,
    explicit_group_id: Optional[str] = None,
    area_id: Optional[str] = None,
) -> Optional[str]:
    """Return the group id an incident should be routed to, or None."""
    if explicit_group_id:
        return explicit_group_id

    if not area_id:
        return None

    area = find_area(db, area_id)
    if area is None:
        logger.info(f"Target area {area_id} not found, incident will have no target group")
        return None
    if area.group_id is None:
        logger.info(f"Area {area_id} has no owning group, incident will have no target group")
        return None

    return area.group_id
