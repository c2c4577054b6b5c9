"""
Dispatch Services Module

Incident targeting, response authorization, the response ledger, incident
queries and the orchestration that ties them together for the routers.

Usage:
    from services.dispatch.orchestrator import create_incident, respond
    from services.dispatch.queries import IncidentFilter, list_incidents
"""
