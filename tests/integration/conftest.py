"""
Pytest configuration for integration tests
"""

import pytest

from brewery_inventory.services.permission_service import INVENTORY_VIEW, INVENTORY_MODIFY
from tests.conftest import TEST_USER_ID, grant_permissions


@pytest.fixture
def operator_headers(db_session, user_headers):
    """A regular operator allowed to view and modify inventory."""
    grant_permissions(db_session, TEST_USER_ID, INVENTORY_VIEW, INVENTORY_MODIFY)
    return user_headers
