"""
Item Repository Implementation - raw materials and finished goods
"""

from typing import Dict, List

from sqlalchemy.exc import IntegrityError

from brewery_inventory.database import db
from brewery_inventory.models import (
    ITEM_MODELS, LOT_MODELS, ElementType, InventoryMovement, InventoryReference, ItemStatus
)
from brewery_inventory.utils.errors import ConflictError
from .base import ItemRepositoryInterface

KIND_FILTERS = {
    ElementType.RAW_MATERIAL: 'material_type',
    ElementType.FINISHED_GOOD: 'style',
}


class ItemRepository(ItemRepositoryInterface):
    """Item table access for one element kind"""

    def __init__(self, element_type: ElementType):
        self.element_type = element_type
        self.model = ITEM_MODELS[element_type]
        self.lot_model = LOT_MODELS[element_type]

    def get_by_id(self, item_id: int, lock: bool = False):
        """Get item by id; lock takes a row lock for the current transaction"""
        query = self.model.query.filter_by(id=item_id)
        if lock:
            # refresh rows already in the session with the locked values
            query = query.with_for_update().populate_existing()
        return query.first()

    def get_by_code(self, code: str):
        """Get item by its unique code"""
        return self.model.query.filter_by(code=code).first()

    def add(self, item):
        """Stage a new item; unique code violations surface as ConflictError"""
        if self.get_by_code(item.code) is not None:
            raise ConflictError(f"{self.model.__name__} with code {item.code} already exists")

        db.session.add(item)
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"{self.model.__name__} with code {item.code} already exists")
        return item

    def delete(self, item) -> None:
        db.session.delete(item)
        db.session.flush()

    def search(self, filters: Dict) -> List:
        """Filter items by code/name fragments, status, kind attribute and low stock"""
        query = self.model.query

        if filters.get('code'):
            query = query.filter(self.model.code.ilike(f"%{filters['code']}%"))

        if filters.get('name'):
            query = query.filter(self.model.name.ilike(f"%{filters['name']}%"))

        if filters.get('status'):
            query = query.filter(self.model.status == ItemStatus(filters['status']))

        kind_field = KIND_FILTERS[self.element_type]
        if filters.get(kind_field):
            query = query.filter(getattr(self.model, kind_field) == filters[kind_field])

        if filters.get('low_stock'):
            query = query.filter(self.model.current_stock <= self.model.minimum_stock)

        return query.order_by(self.model.name.asc()).all()

    def get_low_stock_items(self) -> List:
        """Active items at or below minimum stock, biggest deficit first"""
        return self.model.query.filter(
            self.model.status == ItemStatus.ACTIVE,
            self.model.current_stock <= self.model.minimum_stock
        ).order_by(
            (self.model.minimum_stock - self.model.current_stock).desc(),
            self.model.code.asc()
        ).all()

    def get_all(self) -> List:
        return self.model.query.order_by(self.model.id.asc()).all()

    def has_dependents(self, item) -> bool:
        """Lots, ledger rows or external documents pointing at the item"""
        has_lots = db.session.query(
            self.lot_model.query.filter_by(item_id=item.id).exists()
        ).scalar()
        if has_lots:
            return True

        has_movements = db.session.query(
            InventoryMovement.query.filter_by(
                element_type=self.element_type, element_id=item.id
            ).exists()
        ).scalar()
        if has_movements:
            return True

        return bool(db.session.query(
            InventoryReference.query.filter_by(
                element_type=self.element_type, element_id=item.id
            ).exists()
        ).scalar())
