"""
Status change notifications.

Events are published to EventBridge for the messaging subsystem to deliver.
Emission is fire-and-forget: a failed put is logged and never fails the
workflow operation that triggered it.
"""
import json
import boto3
from typing import Any, Dict
from .config import config
from .logging import logger


def event_name(entity: str, status: str) -> str:
    """Event naming convention shared with the messaging subsystem, e.g. scout_job_expired."""
    return f"scout_{entity}_{status}"


class EventNotifier:
    """Publishes workflow events to an EventBridge bus."""

    def __init__(self, events_client=None, bus_name: str = None, source: str = None):
        self.events_client = events_client or boto3.client('events', region_name=config.AWS_REGION)
        self.bus_name = bus_name or config.EVENT_BUS_NAME
        self.source = source or config.EVENT_SOURCE

    def emit(self, name: str, detail: Dict[str, Any]) -> bool:
        """Send one event. Returns False (after logging) when EventBridge rejected it."""
        try:
            response = self.events_client.put_events(
                Entries=[{
                    'Source': self.source,
                    'DetailType': name,
                    'Detail': json.dumps(detail, default=str),
                    'EventBusName': self.bus_name,
                }]
            )
            if response.get('FailedEntryCount'):
                logger.warning(f"EventBridge rejected {name}: {response.get('Entries')}")
                return False
            return True
        except Exception as e:
            logger.error(f"Failed to send EventBridge event {name}: {e}")
            return False

    def job_status_changed(self, job: Dict[str, Any], actor: str = None) -> bool:
        return self.emit(event_name('job', job['status']), {
            'jobId': job['jobId'],
            'companyId': job.get('companyId'),
            'locationId': job.get('locationId'),
            'status': job['status'],
            'assignedScoutId': job.get('assignedScoutId'),
            'actorId': actor,
        })


_notifier = None


def get_notifier() -> EventNotifier:
    """Get or create the EventBridge notifier."""
    global _notifier
    if _notifier is None:
        _notifier = EventNotifier()
    return _notifier
