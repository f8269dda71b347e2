"""
Service layer - business logic for the brewery inventory
"""

from .allocation import AllocationEngine, plan_allocation
from .item_service import ItemService
from .lot_service import LotService
from .movement_service import MovementService
from .permission_service import PermissionCache, PermissionStore, init_permissions
from .reconciliation_service import ReconciliationService
from .reference_service import ReferenceService
from .report_service import ReportService

__all__ = [
    'AllocationEngine',
    'plan_allocation',
    'ItemService',
    'LotService',
    'MovementService',
    'PermissionCache',
    'PermissionStore',
    'init_permissions',
    'ReconciliationService',
    'ReferenceService',
    'ReportService',
]
