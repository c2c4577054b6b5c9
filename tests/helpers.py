"""
Test data builders
"""

from datetime import datetime, timedelta, timezone

from jwt_auth import create_access_token
from models import Area, Group, Incident, Responder


def make_group(db, group_id, name=None):
    group = Group(id=group_id, name=name or f"Group {group_id}")
    db.add(group)
    db.commit()
    return group


def make_area(db, area_id, group_id=None, name=None):
    area = Area(id=area_id, name=name or f"Area {area_id}", group_id=group_id)
    db.add(area)
    db.commit()
    return area


def make_responder(db, responder_id, group_id=None, name=None, **kwargs):
    responder = Responder(id=responder_id, name=name or f"Responder {responder_id}", group_id=group_id, **kwargs)
    db.add(responder)
    db.commit()
    return responder


def make_incident(db, incident_id=None, target_group_id=None, created_at=None, status="active", **kwargs):
    incident = Incident(
        title=kwargs.pop("title", "House fire"),
        location=kwargs.pop("location", "1 Main St"),
        emergency_type=kwargs.pop("emergency_type", "fire"),
        severity=kwargs.pop("severity", "high"),
        status=status,
        target_group_id=target_group_id,
        created_at=created_at or datetime.now(timezone.utc),
        **kwargs,
    )
    if incident_id:
        incident.id = incident_id
    db.add(incident)
    db.commit()
    return incident


def seed_incidents(db, count, base=None, status="active", target_group_id=None, prefix="INC"):
    """Insert `count` incidents one second apart, oldest first."""
    base = base or datetime(2025, 1, 1, tzinfo=timezone.utc)
    for i in range(count):
        db.add(Incident(
            id=f"{prefix}-{i:04d}",
            title=f"Incident {i}",
            location="Station road",
            emergency_type="rescue",
            severity="medium",
            status=status,
            target_group_id=target_group_id,
            created_at=base + timedelta(seconds=i),
        ))
    db.commit()


def auth_headers(responder_id, role="MEMBER"):
    return {"Authorization": f"Bearer {create_access_token(responder_id, role)}"}
