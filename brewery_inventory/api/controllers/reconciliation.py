"""
Reconciliation Controller
"""

from flask import request
from flask_restx import Namespace, Resource

from brewery_inventory.api.middlewares import require_permission
from brewery_inventory.services import ReconciliationService
from brewery_inventory.services.permission_service import ADMIN_VIEW

reconciliation_ns = Namespace('reconciliation', path='/inventory/reconciliation',
                              description='Stock consistency checks')


@reconciliation_ns.route('')
class Reconciliation(Resource):
    @require_permission(ADMIN_VIEW)
    def get(self):
        """Items whose current_stock differs from the sum over their lots"""
        mismatches = ReconciliationService().verify_all(request.args.get('element_type'))
        return {
            'consistent': not mismatches,
            'data': mismatches,
            'total': len(mismatches),
        }, 200
