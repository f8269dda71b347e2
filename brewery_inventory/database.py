"""
Database configuration and instance
"""

from contextlib import contextmanager
import logging

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

logger = logging.getLogger(__name__)

# Initialize database instance
db = SQLAlchemy()
migrate = Migrate()


def init_db(app):
    """Initialize database with Flask app"""
    db.init_app(app)
    migrate.init_app(app, db)
    return db


@contextmanager
def transaction():
    """
    Run a block of work as one database transaction.

    Commits when the block exits normally; rolls back and re-raises on any
    exception so no partial state survives a failed operation.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.debug("Transaction rolled back")
        raise
