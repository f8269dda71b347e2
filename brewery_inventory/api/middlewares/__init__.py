from .auth import require_auth, get_current_user, current_user_id
from .permissions import require_permission
from .correlation_id import CorrelationIdMiddleware, init_correlation_id_logging, get_correlation_id

__all__ = [
    'require_auth',
    'get_current_user',
    'current_user_id',
    'require_permission',
    'CorrelationIdMiddleware',
    'init_correlation_id_logging',
    'get_correlation_id',
]
