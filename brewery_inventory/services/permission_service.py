"""
Permission Service - permission store and its per-user cache
"""

from typing import Optional, Set
import logging

from brewery_inventory.database import transaction
from brewery_inventory.models import UserPermission
from brewery_inventory.utils.cache_utils import (
    cache_key, clear_cache_pattern, create_redis_client, delete_cache, get_from_cache, set_cache
)

logger = logging.getLogger(__name__)

INVENTORY_VIEW = 'inventory_view'
INVENTORY_MODIFY = 'inventory_modify'
ADMIN_VIEW = 'admin_view'


class PermissionCache:
    """
    Permission sets per user, kept in Redis with a time-to-live.

    Grants and revokes call invalidate() so a change is visible on the next
    request. Without a Redis client every lookup goes to the database.
    """

    key_prefix = 'permissions'

    def __init__(self, redis_client=None, ttl: int = 300):
        self.redis = redis_client
        self.ttl = ttl

    def get(self, user_id: int) -> Optional[Set[str]]:
        cached = get_from_cache(cache_key(self.key_prefix, user_id), self.redis)
        if cached is None:
            return None
        return set(cached)

    def set(self, user_id: int, permissions: Set[str]) -> None:
        set_cache(cache_key(self.key_prefix, user_id), sorted(permissions), self.ttl, self.redis)

    def invalidate(self, user_id: Optional[int] = None) -> None:
        """Drop one user's entry, or every entry when user_id is None"""
        if user_id is None:
            clear_cache_pattern(cache_key(self.key_prefix, '*'), self.redis)
        else:
            delete_cache(cache_key(self.key_prefix, user_id), self.redis)


class PermissionStore:
    """Answers is_authorized(user_id, permission) from user_permissions"""

    def __init__(self, cache: PermissionCache, admin_role: str = 'admin'):
        self.cache = cache
        self.admin_role = admin_role

    def permissions_for(self, user_id: int) -> Set[str]:
        permissions = self.cache.get(user_id)
        if permissions is None:
            rows = UserPermission.query.filter_by(user_id=user_id).all()
            permissions = {row.permission for row in rows}
            self.cache.set(user_id, permissions)
        return set(permissions)

    def is_authorized(self, user_id: int, permission: str, role: Optional[str] = None) -> bool:
        if role is not None and role == self.admin_role:
            return True
        return permission in self.permissions_for(user_id)

    def grant(self, user_id: int, permission: str) -> None:
        with transaction() as session:
            exists = UserPermission.query.filter_by(user_id=user_id, permission=permission).first()
            if not exists:
                session.add(UserPermission(user_id=user_id, permission=permission))
        self.cache.invalidate(user_id)
        logger.info(f"Granted {permission} to user {user_id}")

    def revoke(self, user_id: int, permission: str) -> None:
        with transaction():
            UserPermission.query.filter_by(user_id=user_id, permission=permission).delete()
        self.cache.invalidate(user_id)
        logger.info(f"Revoked {permission} from user {user_id}")


def init_permissions(app):
    """Attach the permission store to the app"""
    redis_client = create_redis_client(app.config.get('REDIS_URL'))
    if redis_client is None:
        logger.info("REDIS_URL not set; permission lookups are not cached")
    cache = PermissionCache(redis_client, ttl=app.config.get('PERMISSION_CACHE_TTL', 300))
    store = PermissionStore(cache, admin_role=app.config.get('ADMIN_ROLE', 'admin'))
    app.extensions['permission_store'] = store
    return store
