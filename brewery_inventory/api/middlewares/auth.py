"""
JWT Authentication Middleware
Verifies bearer tokens issued by the identity provider and exposes the
caller as g.current_user
"""

import jwt
from functools import wraps
from flask import request, g, current_app
import logging

from brewery_inventory.utils.errors import UnauthorizedError

logger = logging.getLogger(__name__)


def get_token_from_request():
    """Extract JWT token from Authorization header"""
    auth_header = request.headers.get('Authorization', '')

    if not auth_header:
        return None

    parts = auth_header.split(' ')
    if len(parts) != 2 or parts[0] != 'Bearer':
        raise UnauthorizedError('Authorization header must be "Bearer <token>"')

    return parts[1]


def decode_jwt(token):
    """Decode and validate JWT token against the configured secret, issuer and audience"""
    config = current_app.config
    options = {}
    kwargs = {}
    if config.get('JWT_ISSUER'):
        kwargs['issuer'] = config['JWT_ISSUER']
    if config.get('JWT_AUDIENCE'):
        kwargs['audience'] = config['JWT_AUDIENCE']
    else:
        options['verify_aud'] = False

    try:
        return jwt.decode(
            token,
            config['JWT_SECRET'],
            algorithms=[config.get('JWT_ALGORITHM', 'HS256')],
            options=options,
            **kwargs
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError('Token has expired')
    except jwt.InvalidTokenError as e:
        logger.warning(f'Invalid token: {str(e)}')
        raise UnauthorizedError('Invalid token')


def user_from_payload(payload):
    """(id, role, email) of the caller; the role lives in user metadata or at the top level"""
    user_id = payload.get('id') or payload.get('user_id') or payload.get('sub')
    if not user_id:
        raise UnauthorizedError('Token missing user identifier')
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise UnauthorizedError('Token user identifier must be numeric')

    metadata = payload.get('user_metadata') or {}
    role = metadata.get('role') or payload.get('role')

    return {
        'id': user_id,
        'role': role,
        'email': payload.get('email'),
    }


def require_auth(f):
    """
    Decorator to require valid JWT authentication
    Attaches user info to g.current_user
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_token_from_request()
        if not token:
            logger.warning('Authentication required: No token provided')
            raise UnauthorizedError('No authentication token provided')

        g.current_user = user_from_payload(decode_jwt(token))
        logger.debug(f'Authenticated user {g.current_user["id"]}')

        return f(*args, **kwargs)

    return decorated_function


def get_current_user():
    """
    Get current authenticated user from Flask g object
    Returns None if not authenticated
    """
    return getattr(g, 'current_user', None)


def current_user_id():
    """Acting user for stock-affecting calls; there is no fallback user"""
    user = get_current_user()
    if not user:
        raise UnauthorizedError('Authenticated user required')
    return user['id']
