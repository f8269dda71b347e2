"""
Reconciliation Service - low stock, near expiry and aggregate verification
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional
import logging

from flask import current_app

from brewery_inventory.models import ElementType
from brewery_inventory.repositories import ItemRepository, LotRepository
from brewery_inventory.utils.errors import NotFoundError, ValidationError
from brewery_inventory.utils.helpers import MAX_NEAR_EXPIRY_DAYS, to_decimal
from .movement_service import parse_enum

logger = logging.getLogger(__name__)


def _kinds(kind=None):
    if kind is None:
        return list(ElementType)
    return [parse_enum(ElementType, kind, 'element_type')]


class ReconciliationService:
    """Read-only checks over items and lots; nothing here corrects data"""

    def low_stock(self, kind=None) -> List[Dict[str, Any]]:
        """Active items at or below minimum stock, biggest deficit first"""
        results = []
        for element_type in _kinds(kind):
            for item in ItemRepository(element_type).get_low_stock_items():
                data = item.to_dict()
                data['deficit'] = float(item.deficit)
                results.append(data)

        results.sort(key=lambda entry: (-entry['deficit'], entry['code']))
        return results

    def near_expiry(self, threshold_days: Optional[int] = None, kind=None, today=None) -> List[Dict[str, Any]]:
        """Available lots with stock expiring within threshold_days, soonest first"""
        if threshold_days is None:
            threshold_days = current_app.config.get('NEAR_EXPIRY_DEFAULT_DAYS', 30)
        if threshold_days <= 0 or threshold_days > MAX_NEAR_EXPIRY_DAYS:
            raise ValidationError(
                f'Threshold days must be between 1 and {MAX_NEAR_EXPIRY_DAYS}',
                details={'days': [f'Must be greater than or equal to 1 and less than or equal to {MAX_NEAR_EXPIRY_DAYS}.']}
            )

        today = today or date.today()
        until = today + timedelta(days=threshold_days)

        results = []
        for element_type in _kinds(kind):
            for lot, item in LotRepository(element_type).get_near_expiry(today, until):
                data = lot.to_dict()
                data.update({
                    'item_code': item.code,
                    'item_name': item.name,
                    'unit_of_measure': item.unit_of_measure,
                    'days_to_expiry': (lot.expiry_date - today).days,
                })
                results.append(data)

        results.sort(key=lambda entry: (entry['expiry_date'], entry['element_type'], entry['id']))
        return results

    def verify(self, kind, item_id: int) -> Dict[str, Any]:
        """Compare an item's cached stock with the sum over its non-Blocked lots"""
        element_type = parse_enum(ElementType, kind, 'element_type')
        item = ItemRepository(element_type).get_by_id(item_id)
        if not item:
            raise NotFoundError(f"{element_type.value} {item_id} not found")
        return self._verify_item(element_type, item)

    def verify_all(self, kind=None) -> List[Dict[str, Any]]:
        """Verify every item and return only the inconsistent ones"""
        mismatches = []
        for element_type in _kinds(kind):
            for item in ItemRepository(element_type).get_all():
                result = self._verify_item(element_type, item)
                if not result['consistent']:
                    mismatches.append(result)

        logger.info(f"Reconciliation finished with {len(mismatches)} inconsistent item(s)")
        return mismatches

    def _verify_item(self, element_type, item) -> Dict[str, Any]:
        current = to_decimal(item.current_stock)
        lots_total = LotRepository(element_type).sum_available(item.id)
        difference = current - lots_total
        consistent = difference == 0

        if not consistent:
            logger.warning(
                f"Stock mismatch on {element_type.value} {item.code}: "
                f"current_stock={current} lots_total={lots_total}"
            )

        return {
            'item_id': item.id,
            'element_type': element_type.value,
            'code': item.code,
            'current_stock': float(current),
            'lots_total': float(lots_total),
            'difference': float(difference),
            'consistent': consistent,
        }
