"""
Authentication utilities for extracting the caller from Cognito tokens,
and tenant role checks against company membership.
"""
from typing import Optional

from .errors import AuthenticationError, AuthorizationError
from .models import CompanyRole


def get_user_sub(event: dict) -> Optional[str]:
    """
    Extract user sub (unique ID) from Cognito authorizer claims.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        User sub string or None if not authenticated
    """
    try:
        return event['requestContext']['authorizer']['claims']['sub']
    except (KeyError, TypeError):
        return None


def get_user_groups(event: dict) -> list:
    """Extract user groups (manager, scout) from Cognito claims."""
    try:
        groups = event['requestContext']['authorizer']['claims'].get('cognito:groups', '')
        if isinstance(groups, str):
            return groups.split(',') if groups else []
        return groups or []
    except (KeyError, TypeError, AttributeError):
        return []


def require_caller(event: dict) -> str:
    """Return the verified caller id or raise a 401."""
    user_id = get_user_sub(event)
    if not user_id:
        raise AuthenticationError()
    return user_id


def is_scout(event: dict) -> bool:
    """Check if user belongs to the scout group."""
    return 'scout' in get_user_groups(event)


def require_member(repository, company_id: str, user_id: str) -> str:
    """Ensure the user has any role in the company; returns that role."""
    role = repository.get_company_role(company_id, user_id)
    if not role:
        raise AuthorizationError()
    return role


def require_manager(repository, company_id: str, user_id: str) -> str:
    """
    Ensure the user is a manager-level member of the company.

    Plain membership is not enough: owners and admins only.

    Returns:
        The caller's company role

    Raises:
        AuthorizationError: no membership or a non-manager role
    """
    role = repository.get_company_role(company_id, user_id)
    if role not in CompanyRole.MANAGERS:
        raise AuthorizationError()
    return role
