"""
Common utility functions for Lambda handlers.
"""
import functools
import json
import traceback
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from .errors import ScoutError, ValidationError
from .logging import logger, log_event


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types from DynamoDB."""

    def default(self, o):
        if isinstance(o, Decimal):
            # Convert to int if it's a whole number, otherwise float
            if o % 1 == 0:
                return int(o)
            return float(o)
        return super().default(o)


def format_response(
    status_code: int,
    body: Any,
    headers: Dict[str, str] = None
) -> Dict[str, Any]:
    """
    Format a standard API Gateway response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Additional headers to include

    Returns:
        API Gateway response dict
    """
    default_headers = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Headers': 'Content-Type,Authorization',
        'Content-Type': 'application/json'
    }

    if headers:
        default_headers.update(headers)

    return {
        'statusCode': status_code,
        'headers': default_headers,
        'body': json.dumps(body, cls=DecimalEncoder)
    }


def parse_body(event: dict) -> dict:
    """
    Parse the JSON body of an API Gateway event.

    Raises:
        ValidationError: body is not a JSON object
    """
    body = event.get('body') or '{}'
    if isinstance(body, dict):
        return body
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        raise ValidationError('Invalid JSON body')
    if not isinstance(parsed, dict):
        raise ValidationError('Request body must be a JSON object')
    return parsed


def get_path_param(event: dict, param_name: str) -> Optional[str]:
    """Extract path parameter from event."""
    try:
        return event['pathParameters'][param_name]
    except (KeyError, TypeError):
        return None


def require_path_param(event: dict, param_name: str) -> str:
    value = get_path_param(event, param_name)
    if not value:
        raise ValidationError(f'Missing {param_name}')
    return value


def get_query_param(event: dict, param_name: str, default: str = None) -> Optional[str]:
    """Extract query string parameter from event."""
    params = event.get('queryStringParameters') or {}
    return params.get(param_name) or default


def api_handler(success_status: int = 200) -> Callable:
    """
    Wrap a Lambda proxy handler body.

    The wrapped function returns the response body; workflow errors become
    their HTTP status with ``{"error", "kind"}``, anything else a generic 500.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(event, context):
            log_event(event)
            try:
                return format_response(success_status, func(event, context))
            except ScoutError as e:
                if e.status_code >= 500:
                    logger.error(f"{func.__module__}: {e.kind}: {e.message}")
                else:
                    logger.info(f"{func.__module__}: {e.kind}: {e.message}")
                return format_response(e.status_code, e.to_body())
            except Exception as e:
                logger.error(f"{func.__module__}: unhandled error: {e}\n{traceback.format_exc()}")
                return format_response(500, {'error': 'Internal Server Error', 'kind': 'UnexpectedError'})
        return wrapper
    return decorator


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a datetime as UTC ISO-8601 so stored strings compare chronologically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Any, field: str) -> Optional[str]:
    """
    Normalize an optional client-supplied timestamp to UTC ISO-8601.

    Raises:
        ValidationError: value is not an ISO-8601 date/time
    """
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return to_iso(value)
    try:
        return to_iso(datetime.fromisoformat(str(value).replace('Z', '+00:00')))
    except ValueError:
        raise ValidationError(f'{field} must be an ISO-8601 timestamp')


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Convert a JSON number to Decimal for DynamoDB.

    Raises:
        ValidationError: value is not numeric
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f'{field} must be a number')
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number')
    if not result.is_finite():
        raise ValidationError(f'{field} must be a finite number')
    return result
