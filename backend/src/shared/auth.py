"""
Authentication utilities for extracting user info from Cognito tokens.
"""
from typing import Optional

from .errors import ForbiddenError, UnauthorizedError


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
    """Extract user groups (user, admin) from Cognito claims."""
    try:
        groups = event['requestContext']['authorizer']['claims'].get('cognito:groups', '')
        if isinstance(groups, str):
            return groups.split(',') if groups else []
        return groups or []
    except (KeyError, TypeError):
        return []


def is_admin(event: dict) -> bool:
    """Check if user belongs to admin group."""
    return 'admin' in get_user_groups(event)


def require_user(event: dict) -> str:
    """User sub, or UnauthorizedError when the request carries no claims."""
    user_id = get_user_sub(event)
    if not user_id:
        raise UnauthorizedError('Missing user identity')
    return user_id


def require_admin(event: dict) -> str:
    """Admin user sub, or ForbiddenError for non-admins."""
    user_id = require_user(event)
    if not is_admin(event):
        raise ForbiddenError('Admin access required')
    return user_id
