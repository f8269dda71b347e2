"""
User Permission Model
"""

from datetime import datetime

from brewery_inventory.database import db


class UserPermission(db.Model):
    """Permission granted to a user of the identity provider"""
    __tablename__ = 'user_permissions'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'permission', name='uq_user_permissions_user_permission'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    permission = db.Column(db.String(100), nullable=False)
    granted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<UserPermission {self.user_id}:{self.permission}>'
