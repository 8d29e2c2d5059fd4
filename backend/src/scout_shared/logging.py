"""
Logging utilities for scout job handlers and components.
"""
import logging
import json

# Request fields that may carry answers, tokens or personal data
REDACTED_EVENT_KEYS = ('body', 'headers', 'multiValueHeaders')

logger = logging.getLogger('scoutjobs')
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logger.addHandler(handler)


def log_event(event: dict) -> None:
    """Log incoming Lambda event without bodies, headers or Cognito claims."""
    try:
        safe_event = {k: v for k, v in event.items() if k not in REDACTED_EVENT_KEYS}
        request_context = safe_event.get('requestContext')
        if isinstance(request_context, dict) and 'authorizer' in request_context:
            safe_event['requestContext'] = {
                k: v for k, v in request_context.items() if k != 'authorizer'
            }
        logger.info(f"Lambda event: {json.dumps(safe_event, default=str)}")
    except Exception as e:
        logger.warning(f"Could not log event: {e}")


def log_transition(entity: str, entity_id: str, old_status: str, new_status: str, actor: str = None) -> None:
    """Log a status change in a single greppable format."""
    suffix = f" by {actor}" if actor else ''
    logger.info(f"{entity} {entity_id}: {old_status} -> {new_status}{suffix}")
