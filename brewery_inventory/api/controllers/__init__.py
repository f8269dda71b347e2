from flask import Blueprint
from flask_restx import Api

from brewery_inventory.utils.error_handlers import register_api_error_handlers
from .items import raw_materials_ns, finished_goods_ns
from .movements import movements_ns
from .reconciliation import reconciliation_ns

api_bp = Blueprint('api', __name__)
api = Api(api_bp, version='1.0', title='Brewery Inventory API',
          description='Raw materials, finished goods, lots and the movement ledger', doc='/docs/')

api.add_namespace(raw_materials_ns)
api.add_namespace(finished_goods_ns)
api.add_namespace(movements_ns)
api.add_namespace(reconciliation_ns)

register_api_error_handlers(api)

__all__ = ['api_bp', 'api']
