"""
Item Service - raw material and finished good registry
"""

from decimal import Decimal
from typing import Any, Dict, List
import logging

from brewery_inventory.database import transaction
from brewery_inventory.models import ITEM_MODELS, ElementType, ItemStatus
from brewery_inventory.repositories import ItemRepository, LotRepository
from brewery_inventory.utils.errors import NotFoundError, ValidationError
from brewery_inventory.utils.helpers import check_quantity_scale, to_decimal

logger = logging.getLogger(__name__)

COMMON_FIELDS = ('code', 'name', 'unit_of_measure', 'minimum_stock', 'status', 'notes')

KIND_FIELDS = {
    ElementType.RAW_MATERIAL: ('material_type', 'subtype', 'location', 'attributes'),
    ElementType.FINISHED_GOOD: ('style', 'presentation', 'capacity', 'description'),
}

IMMUTABLE_FIELDS = ('id', 'code', 'current_stock')


class ItemService:
    """Business logic for the item master records of one element kind"""

    def __init__(self, element_type: ElementType):
        self.element_type = ElementType(element_type)
        self.model = ITEM_MODELS[self.element_type]
        self.item_repo = ItemRepository(self.element_type)
        self.lot_repo = LotRepository(self.element_type)
        self.allowed_fields = COMMON_FIELDS + KIND_FIELDS[self.element_type]

    @property
    def label(self):
        return self.model.__name__

    def _clean(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = {key: value for key, value in fields.items() if key in self.allowed_fields}
        if 'minimum_stock' in data:
            data['minimum_stock'] = check_quantity_scale(data['minimum_stock'], 'minimum_stock')
            if data['minimum_stock'] < 0:
                raise ValidationError(
                    'minimum_stock cannot be negative',
                    details={'minimum_stock': ['Must be greater than or equal to 0.']}
                )
        if 'status' in data and data['status'] is not None:
            data['status'] = ItemStatus(data['status'])
        return data

    def create(self, fields: Dict[str, Any]):
        """Create an item; stock always starts at zero"""
        data = {key: value for key, value in self._clean(fields).items() if value is not None}
        data['current_stock'] = Decimal('0')

        with transaction():
            item = self.item_repo.add(self.model(**data))

        logger.info(f"Created {self.label} {item.code} (id={item.id})")
        return item

    def get(self, item_id: int):
        item = self.item_repo.get_by_id(item_id)
        if not item:
            raise NotFoundError(f"{self.label} {item_id} not found")
        return item

    def get_by_code(self, code: str):
        item = self.item_repo.get_by_code(code)
        if not item:
            raise NotFoundError(f"{self.label} with code {code} not found")
        return item

    def get_with_lots(self, item_id: int) -> Dict[str, Any]:
        """Item payload including every lot, oldest receipt first"""
        item = self.get(item_id)
        data = item.to_dict()
        data['lots'] = [lot.to_dict() for lot in self.lot_repo.list_by_item(item.id)]
        return data

    def update(self, item_id: int, patch: Dict[str, Any]):
        """Update mutable fields; code, current_stock and id cannot be patched"""
        rejected = [field for field in IMMUTABLE_FIELDS if field in patch]
        if rejected:
            raise ValidationError(
                'Immutable fields cannot be updated',
                details={field: ['Field cannot be modified.'] for field in rejected}
            )

        data = self._clean(patch)
        with transaction():
            item = self.item_repo.get_by_id(item_id, lock=True)
            if not item:
                raise NotFoundError(f"{self.label} {item_id} not found")
            for key, value in data.items():
                setattr(item, key, value)

        logger.info(f"Updated {self.label} {item.code}: {sorted(data)}")
        return item

    def delete(self, item_id: int) -> Dict[str, Any]:
        """
        Remove an item.

        Items referenced by lots, movements or external documents are only
        deactivated; anything else is removed outright.
        """
        with transaction():
            item = self.item_repo.get_by_id(item_id, lock=True)
            if not item:
                raise NotFoundError(f"{self.label} {item_id} not found")

            if self.item_repo.has_dependents(item):
                item.soft_delete()
                result = {'id': item.id, 'deleted': 'soft', 'status': item.status.value}
            else:
                self.item_repo.delete(item)
                result = {'id': item_id, 'deleted': 'hard'}

        logger.info(f"Deleted {self.label} {item_id} ({result['deleted']})")
        return result

    def list_by_filter(self, filters: Dict[str, Any]) -> List:
        return self.item_repo.search(filters or {})

    def lock(self, item_id: int):
        """Row-lock an item inside the caller's transaction"""
        item = self.item_repo.get_by_id(item_id, lock=True)
        if not item:
            raise NotFoundError(f"{self.label} {item_id} not found")
        return item

    def adjust_stock(self, item, delta, direction: str):
        """
        Move the cached aggregate stock. Only the ledger calls this, inside
        its own transaction.

        Args:
            delta: positive magnitude
            direction: 'in' or 'out'
        """
        delta = to_decimal(delta)
        current = to_decimal(item.current_stock)

        if direction == 'out':
            if current < delta:
                raise ValidationError(
                    f"Insufficient stock for {item.code}: current {current}, requested {delta}",
                    details={'quantity': [f'Only {current} in stock.']}
                )
            item.current_stock = current - delta
        elif direction == 'in':
            item.current_stock = current + delta
        else:
            raise ValueError(f"Unknown stock direction: {direction}")

        return item.current_stock
