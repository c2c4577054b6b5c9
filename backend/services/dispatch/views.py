"""
Serialization of dispatch rows to camelCase API dicts.
"""

from typing import Optional

from models import Area, Group, Incident, IncidentResponse, Responder


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def responder_summary(responder: Optional[Responder]) -> Optional[dict]:
    if responder is None:
        return None
    return {"id": responder.id, "name": responder.name}


def area_view(area: Optional[Area]) -> Optional[dict]:
    if area is None:
        return None
    return {"id": area.id, "name": area.name, "groupId": area.group_id}


def group_view(group: Optional[Group], member_count: Optional[int] = None) -> Optional[dict]:
    if group is None:
        return None
    view = {"id": group.id, "name": group.name}
    if member_count is not None:
        view["memberCount"] = member_count
    return view


def response_view(response: IncidentResponse) -> dict:
    return {
        "id": response.id,
        "incidentId": response.incident_id,
        "responderId": response.responder_id,
        "responseType": response.response_type,
        "estimatedArrival": _iso(response.estimated_arrival),
        "notes": response.notes,
        "status": response.status,
        "createdAt": _iso(response.created_at),
        "updatedAt": _iso(response.updated_at),
        "responder": responder_summary(response.responder),
    }


def incident_view(incident: Incident, member_count: Optional[int] = None, include_responses: bool = True) -> dict:
    view = {
        "id": incident.id,
        "title": incident.title,
        "description": incident.description,
        "location": incident.location,
        "latitude": incident.latitude,
        "longitude": incident.longitude,
        "emergencyType": incident.emergency_type,
        "severity": incident.severity,
        "status": incident.status,
        "targetAreaId": incident.target_area_id,
        "targetGroupId": incident.target_group_id,
        "createdAt": _iso(incident.created_at),
        "targetArea": area_view(incident.target_area),
        "targetGroup": group_view(incident.target_group, member_count),
    }
    if include_responses:
        responses = [response_view(r) for r in incident.responses]
        view["responses"] = responses
        view["responseCount"] = len(responses)
    return view
