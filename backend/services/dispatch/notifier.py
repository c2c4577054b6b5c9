"""
Call-out Notifier: tell a group's members an incident needs them.

Runs as a FastAPI BackgroundTask after the incident-create response has
been built, so it never holds up (or fails) incident creation. Delivery is
best-effort: failures are logged and dropped, there are no retries.

Notifier selection:
    CALLOUT_NOTIFY_WEBHOOK_URL set   -> WebhookNotifier (JSON POST via httpx)
    otherwise                        -> LoggingNotifier
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import List, Optional

import httpx

logger = logging.getLogger(__name__)

NOTIFY_WEBHOOK_URL = os.environ.get("CALLOUT_NOTIFY_WEBHOOK_URL")
NOTIFY_TIMEOUT = float(os.environ.get("CALLOUT_NOTIFY_TIMEOUT", "5"))


@dataclass(frozen=True)
class Callout:
    """Outbound message: which members to page for which incident."""
    incident_id: str
    incident_title: str
    severity: str
    group_id: str
    group_name: str
    member_ids: List[str] = field(default_factory=list)


class Notifier(ABC):
    @abstractmethod
    def notify(self, callout: Callout) -> None:
        ...


class LoggingNotifier(Notifier):
    """Default notifier: records the call-out in the log only."""

    def notify(self, callout: Callout) -> None:
        logger.info(
            f"Call-out for incident {callout.incident_id}: notifying "
            f"{len(callout.member_ids)} members of group {callout.group_name} ({callout.group_id})"
        )


class WebhookNotifier(Notifier):
    """POSTs the call-out as JSON to an external paging service."""

    def __init__(self, url: str, timeout: float = NOTIFY_TIMEOUT, transport: Optional[httpx.BaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def notify(self, callout: Callout) -> None:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.url, json={
                "incidentId": callout.incident_id,
                "title": callout.incident_title,
                "severity": callout.severity,
                "groupId": callout.group_id,
                "groupName": callout.group_name,
                "memberIds": list(callout.member_ids),
            })
            response.raise_for_status()
        logger.info(f"Call-out webhook delivered for incident {callout.incident_id} ({len(callout.member_ids)} members)")


def build_notifier(webhook_url: Optional[str] = NOTIFY_WEBHOOK_URL) -> Notifier:
    if webhook_url:
        return WebhookNotifier(webhook_url)
    return LoggingNotifier()


def deliver_callout(notifier: Notifier, callout: Callout) -> bool:
    """
    Background task entry point. Never raises.

    Returns:
        True if the notifier accepted the call-out
    """
    try:
        notifier.notify(callout)
        return True
    except httpx.TimeoutException:
        logger.error(f"Call-out notification timed out for incident {callout.incident_id}")
    except Exception as e:
        logger.error(
            f"Call-out notification failed for incident {callout.incident_id}: {e} "
            f"(payload: {asdict(callout)})",
            exc_info=True,
        )
    return False
