import os
import uuid
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

import jwt

# Set test environment variables before importing the app
os.environ['FLASK_ENV'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

from brewery_inventory import create_app
from brewery_inventory.models import (
    db, RawMaterial, FinishedGood, InventoryReference, UserPermission
)
from brewery_inventory.services import LotService

TEST_USER_ID = 7


@pytest.fixture(scope='session')
def app():
    """Create application for the tests."""
    app = create_app('testing')

    with app.app_context():
        # Create all database tables
        db.create_all()
        yield app
        # Clean up
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Create a database session for a test."""
    with app.app_context():
        db.create_all()

        yield db.session

        # Clean up tables
        db.session.rollback()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions['permission_store'].cache.invalidate()


@pytest.fixture
def admin_headers(app):
    """Bearer token for a user holding the admin role."""
    return auth_headers_for(app, user_id=1, role='admin')


@pytest.fixture
def user_headers(app):
    """Bearer token for a regular user; grant permissions with grant_permissions()."""
    return auth_headers_for(app, user_id=TEST_USER_ID, role='operator')


# Helper functions for tests
def make_token(app, user_id, role=None, expires_in=timedelta(hours=1), **claims):
    """Sign a token the way the identity provider does."""
    payload = {
        'id': user_id,
        'email': f'user{user_id}@brewery.test',
        'user_metadata': {'role': role} if role else {},
        'exp': datetime.utcnow() + expires_in,
    }
    payload.update(claims)
    return jwt.encode(payload, app.config['JWT_SECRET'], algorithm=app.config['JWT_ALGORITHM'])


def auth_headers_for(app, user_id, role=None):
    return {
        'Authorization': f'Bearer {make_token(app, user_id, role)}',
        'Content-Type': 'application/json',
    }


def grant_permissions(db_session, user_id, *permissions):
    for permission in permissions:
        db_session.add(UserPermission(user_id=user_id, permission=permission))
    db_session.commit()


def create_test_raw_material(db_session, **kwargs):
    """Create a test raw material with default values."""
    defaults = {
        'code': f'MP-{str(uuid.uuid4())[:8]}',
        'name': 'Pale Malt',
        'unit_of_measure': 'kg',
        'material_type': 'Malt',
        'minimum_stock': Decimal('0'),
        'current_stock': Decimal('0'),
    }
    defaults.update(kwargs)

    item = RawMaterial(**defaults)
    db_session.add(item)
    db_session.commit()
    return item


def create_test_finished_good(db_session, **kwargs):
    """Create a test finished good with default values."""
    defaults = {
        'code': f'PT-{str(uuid.uuid4())[:8]}',
        'name': 'Amber Ale 355ml',
        'unit_of_measure': 'unit',
        'style': 'Amber Ale',
        'presentation': 'Bottle',
        'capacity': Decimal('0.355'),
        'minimum_stock': Decimal('0'),
        'current_stock': Decimal('0'),
    }
    defaults.update(kwargs)

    item = FinishedGood(**defaults)
    db_session.add(item)
    db_session.commit()
    return item


def receive_test_lot(item, quantity, user_id=TEST_USER_ID, **kwargs):
    """Create a lot through the lot service so the ledger and item stock stay in step."""
    fields = {
        'item_id': item.id,
        'lot_code': f'L-{str(uuid.uuid4())[:8]}',
        'quantity': quantity,
        'received_date': date.today(),
    }
    fields.update(kwargs)
    return LotService(item.element_type).create(fields, user_id)


def create_test_reference(db_session, item, kind, lot=None):
    """Register an external document pointing at an item or lot."""
    reference = InventoryReference(
        element_type=item.element_type,
        element_id=item.id,
        lot_id=lot.id if lot else None,
        reference_kind=kind,
        document_id=1,
    )
    db_session.add(reference)
    db_session.commit()
    return reference


def days_from_today(days):
    return date.today() + timedelta(days=days)
