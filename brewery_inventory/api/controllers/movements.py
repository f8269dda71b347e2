"""
Movement Controller - ledger posting, listing and reports
"""

from flask import request
from flask_restx import Namespace, Resource, fields

from brewery_inventory.api.middlewares import require_permission, current_user_id
from brewery_inventory.services import MovementService, ReportService
from brewery_inventory.services.permission_service import INVENTORY_MODIFY, INVENTORY_VIEW
from brewery_inventory.utils.pagination import resolve_page_args
from brewery_inventory.utils.schemas import MovementRequestSchema, MovementFilterSchema
import logging

logger = logging.getLogger(__name__)

movements_ns = Namespace('movements', path='/inventory/movements', description='Inventory movement ledger')

movement_request_schema = MovementRequestSchema()
movement_filter_schema = MovementFilterSchema()

movement_model = movements_ns.model('MovementRequest', {
    'movement_type': fields.String(required=True, description='Entry, Exit, PositiveAdjustment or NegativeAdjustment'),
    'element_type': fields.String(required=True, description='RawMaterial or FinishedGood'),
    'element_id': fields.Integer(required=True, description='Item id'),
    'lot_id': fields.Integer(description='Lot to post against; omitted outbound movements draw FIFO'),
    'quantity': fields.Float(required=True, description='Positive quantity'),
    'unit_of_measure': fields.String(description="Defaults to the item's unit"),
    'document_reference': fields.String(description='Source document type'),
    'reference_id': fields.Integer(description='Source document id'),
    'reason': fields.String(description='Reason for the movement'),
    'notes': fields.String(description='Additional notes'),
    'idempotency_key': fields.String(description='Replaying the same key returns the original movement'),
})


def _filters_and_page():
    filters = movement_filter_schema.load(request.args.to_dict())
    page, limit = resolve_page_args(filters.pop('page', None), filters.pop('limit', None))
    return filters, page, limit


@movements_ns.route('/')
class MovementList(Resource):
    @require_permission(INVENTORY_VIEW)
    def get(self):
        """List movements, newest first"""
        filters, page, limit = _filters_and_page()
        return MovementService().list_movements(filters, page, limit), 200

    @movements_ns.expect(movement_model)
    @require_permission(INVENTORY_MODIFY)
    def post(self):
        """Post a movement; the acting user comes from the token"""
        data = movement_request_schema.load(request.get_json() or {})
        movements = MovementService().create_movement(user_id=current_user_id(), **data)
        return {
            'data': [movement.to_dict() for movement in movements],
            'total_quantity': float(sum(movement.quantity for movement in movements)),
        }, 201


@movements_ns.route('/<int:movement_id>')
class MovementDetail(Resource):
    @require_permission(INVENTORY_VIEW)
    def get(self, movement_id):
        return MovementService().get_movement(movement_id).to_dict(), 200


@movements_ns.route('/element/<string:element_type>')
class MovementsByElementType(Resource):
    @require_permission(INVENTORY_VIEW)
    def get(self, element_type):
        """Movements of one element kind, optionally narrowed with ?element_id="""
        filters, page, limit = _filters_and_page()
        filters.pop('element_type', None)
        element_id = filters.pop('element_id', None)
        return MovementService().list_by_element_type(element_type, element_id, filters, page, limit), 200


@movements_ns.route('/report')
class MovementReport(Resource):
    @require_permission(INVENTORY_VIEW)
    def get(self):
        """Totals per type and counts per element type, user and day"""
        filters, _, _ = _filters_and_page()
        return ReportService().movement_report(filters), 200


@movements_ns.route('/detailed')
class DetailedMovements(Resource):
    @require_permission(INVENTORY_VIEW)
    def get(self):
        """Movements with element code/name and lot code"""
        filters, page, limit = _filters_and_page()
        return ReportService().detailed_movements(filters, page, limit), 200
