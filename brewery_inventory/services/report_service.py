"""
Report Service - read-side grouping of ledger rows
"""

from typing import Any, Dict
import logging

from brewery_inventory.database import db
from brewery_inventory.models import ITEM_MODELS, LOT_MODELS
from brewery_inventory.repositories import MovementRepository
from brewery_inventory.utils.pagination import build_pagination

logger = logging.getLogger(__name__)


class ReportService:
    """Movement summaries built from the same filters as the ledger listing"""

    def __init__(self):
        self.movement_repo = MovementRepository()

    def movement_report(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        """Totals per movement type and counts per element type, user and day"""
        filters = filters or {}

        by_type = {
            movement_type.value: {'count': count, 'quantity': float(quantity or 0)}
            for movement_type, count, quantity in self.movement_repo.totals_by_type(filters)
        }
        by_element_type = {
            element_type.value: count
            for element_type, count in self.movement_repo.counts_by_element_type(filters)
        }
        by_user = [
            {'user_id': user_id, 'count': count}
            for user_id, count in self.movement_repo.counts_by_user(filters)
        ]
        by_day = [
            {'date': day.isoformat() if hasattr(day, 'isoformat') else str(day), 'count': count}
            for day, count in self.movement_repo.counts_by_day(filters)
        ]

        return {
            'total_movements': sum(entry['count'] for entry in by_type.values()),
            'by_movement_type': by_type,
            'by_element_type': by_element_type,
            'by_user': by_user,
            'by_day': by_day,
        }

    def detailed_movements(self, filters: Dict[str, Any], page=1, limit=20) -> Dict[str, Any]:
        """Paginated ledger rows with the element's code/name and the lot code"""
        query = self.movement_repo.filtered_query(filters or {})
        result = query.paginate(page=page, per_page=limit, error_out=False)

        items_cache = {}
        lots_cache = {}
        data = []
        for movement in result.items:
            entry = movement.to_dict()

            item_key = (movement.element_type, movement.element_id)
            if item_key not in items_cache:
                items_cache[item_key] = db.session.get(ITEM_MODELS[movement.element_type], movement.element_id)
            item = items_cache[item_key]
            entry['element_code'] = item.code if item else None
            entry['element_name'] = item.name if item else None

            lot_code = None
            if movement.lot_id is not None:
                lot_key = (movement.element_type, movement.lot_id)
                if lot_key not in lots_cache:
                    lots_cache[lot_key] = db.session.get(LOT_MODELS[movement.element_type], movement.lot_id)
                lot = lots_cache[lot_key]
                lot_code = lot.lot_code if lot else None
            entry['lot_code'] = lot_code

            data.append(entry)

        return build_pagination(data, result.total, page, limit)
