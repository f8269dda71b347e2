"""
Item Controllers - raw material and finished good endpoints with their lots

Both kinds expose the same routes, so one factory builds a namespace per kind.
"""

from flask import request
from flask_restx import Namespace, Resource

from brewery_inventory.api.middlewares import require_permission, current_user_id
from brewery_inventory.models import ElementType
from brewery_inventory.services import (
    ItemService, LotService, MovementService, ReconciliationService, ReferenceService
)
from brewery_inventory.services.permission_service import INVENTORY_MODIFY, INVENTORY_VIEW
from brewery_inventory.utils.pagination import resolve_page_args
from brewery_inventory.utils.schemas import (
    RawMaterialRequestSchema, RawMaterialUpdateSchema,
    FinishedGoodRequestSchema, FinishedGoodUpdateSchema,
    RawMaterialLotRequestSchema, RawMaterialLotUpdateSchema,
    FinishedGoodLotRequestSchema, FinishedGoodLotUpdateSchema,
    ItemFilterSchema, LotFilterSchema, MovementFilterSchema, NearExpirySchema, ReferenceRequestSchema
)
import logging

logger = logging.getLogger(__name__)

item_filter_schema = ItemFilterSchema()
lot_filter_schema = LotFilterSchema()
movement_filter_schema = MovementFilterSchema()
near_expiry_schema = NearExpirySchema()
reference_schema = ReferenceRequestSchema()


def build_item_namespace(element_type, name, path, item_schema, item_update_schema,
                         lot_schema, lot_update_schema):
    """Namespace with item, lot, stock and reconciliation routes for one element kind"""
    ns = Namespace(name, path=path, description=f'{element_type.value} inventory operations')

    @ns.route('/')
    class ItemList(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self):
            """List items with optional code/name/status/low_stock filters"""
            filters = item_filter_schema.load(request.args.to_dict())
            items = ItemService(element_type).list_by_filter(filters)
            return {'data': [item.to_dict() for item in items], 'total': len(items)}, 200

        @require_permission(INVENTORY_MODIFY)
        def post(self):
            """Create an item; stock starts at zero"""
            data = item_schema.load(request.get_json() or {})
            item = ItemService(element_type).create(data)
            return item.to_dict(), 201

    @ns.route('/<int:item_id>')
    class ItemDetail(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self, item_id):
            """Get an item; ?include=lots adds its lots"""
            service = ItemService(element_type)
            if request.args.get('include') == 'lots':
                return service.get_with_lots(item_id), 200
            return service.get(item_id).to_dict(), 200

        @require_permission(INVENTORY_MODIFY)
        def put(self, item_id):
            data = item_update_schema.load(request.get_json() or {}, partial=True)
            item = ItemService(element_type).update(item_id, data)
            return item.to_dict(), 200

        @require_permission(INVENTORY_MODIFY)
        def delete(self, item_id):
            """Soft delete when referenced, hard delete otherwise"""
            return ItemService(element_type).delete(item_id), 200

    @ns.route('/<int:item_id>/lots')
    class ItemLots(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self, item_id):
            """Lots of an item; status=Available returns them in FIFO order"""
            lots = LotService(element_type).list_by_item(item_id, status=request.args.get('status'))
            return {'data': [lot.to_dict() for lot in lots], 'total': len(lots)}, 200

    @ns.route('/<int:item_id>/movements')
    class ItemMovements(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self, item_id):
            filters = movement_filter_schema.load(request.args.to_dict())
            page, limit = resolve_page_args(filters.pop('page', None), filters.pop('limit', None))
            ItemService(element_type).get(item_id)
            return MovementService().list_by_element_type(element_type, item_id, filters, page, limit), 200

    @ns.route('/<int:item_id>/references')
    class ItemReferences(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self, item_id):
            references = ReferenceService(element_type).list_by_item(item_id)
            return {'data': [reference.to_dict() for reference in references], 'total': len(references)}, 200

        @require_permission(INVENTORY_MODIFY)
        def post(self, item_id):
            """Register an external document that points at this item"""
            data = reference_schema.load(request.get_json() or {})
            reference = ReferenceService(element_type).register(item_id, **data)
            return reference.to_dict(), 201

    @ns.route('/<int:item_id>/verify')
    class ItemVerify(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self, item_id):
            """Compare current_stock with the sum over non-Blocked lots"""
            return ReconciliationService().verify(element_type, item_id), 200

    @ns.route('/low-stock')
    class LowStock(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self):
            items = ReconciliationService().low_stock(element_type)
            return {'data': items, 'total': len(items)}, 200

    @ns.route('/near-expiry')
    class NearExpiry(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self):
            """Lots expiring within ?days= (default from configuration)"""
            args = near_expiry_schema.load(request.args.to_dict())
            lots = ReconciliationService().near_expiry(args.get('days'), element_type)
            return {'data': lots, 'total': len(lots)}, 200

    @ns.route('/lots')
    class LotList(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self):
            filters = lot_filter_schema.load(request.args.to_dict())
            lots = LotService(element_type).list(filters)
            return {'data': [lot.to_dict() for lot in lots], 'total': len(lots)}, 200

        @require_permission(INVENTORY_MODIFY)
        def post(self):
            """Create a lot and post its opening balance to the ledger"""
            data = lot_schema.load(request.get_json() or {})
            lot = LotService(element_type).create(data, current_user_id())
            return lot.to_dict(), 201

    @ns.route('/lots/<int:lot_id>')
    class LotDetail(Resource):
        @require_permission(INVENTORY_VIEW)
        def get(self, lot_id):
            return LotService(element_type).get(lot_id).to_dict(), 200

        @require_permission(INVENTORY_MODIFY)
        def put(self, lot_id):
            data = lot_update_schema.load(request.get_json() or {}, partial=True)
            lot = LotService(element_type).update(lot_id, data, current_user_id())
            return lot.to_dict(), 200

        @require_permission(INVENTORY_MODIFY)
        def delete(self, lot_id):
            """Block when referenced, otherwise write off and remove"""
            return LotService(element_type).delete(lot_id, current_user_id()), 200

    return ns


raw_materials_ns = build_item_namespace(
    ElementType.RAW_MATERIAL, 'raw-materials', '/inventory/raw-materials',
    RawMaterialRequestSchema(), RawMaterialUpdateSchema(),
    RawMaterialLotRequestSchema(), RawMaterialLotUpdateSchema(),
)

finished_goods_ns = build_item_namespace(
    ElementType.FINISHED_GOOD, 'finished-goods', '/inventory/finished-goods',
    FinishedGoodRequestSchema(), FinishedGoodUpdateSchema(),
    FinishedGoodLotRequestSchema(), FinishedGoodLotUpdateSchema(),
)
