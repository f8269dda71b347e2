"""
Permission Middleware - gates endpoints on permission strings
"""

from functools import wraps
from flask import current_app, g
import logging

from brewery_inventory.utils.errors import ForbiddenError
from .auth import require_auth

logger = logging.getLogger(__name__)


def get_permission_store():
    return current_app.extensions['permission_store']


def require_permission(permission):
    """
    Decorator to require a permission
    Usage: @require_permission('inventory_modify')
    """
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            user = g.current_user
            if not get_permission_store().is_authorized(user['id'], permission, role=user.get('role')):
                logger.warning(f'Authorization failed: user {user["id"]} lacks {permission}')
                raise ForbiddenError(f'Missing permission: {permission}')

            return f(*args, **kwargs)

        return decorated_function
    return decorator
