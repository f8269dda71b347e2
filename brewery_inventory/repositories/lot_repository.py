"""
Lot Repository Implementation
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from brewery_inventory.database import db
from brewery_inventory.models import (
    ITEM_MODELS, LOT_BLOCKING_REFERENCES, LOT_MODELS, ElementType, InventoryReference, LotStatus
)
from brewery_inventory.utils.errors import ConflictError
from .base import LotRepositoryInterface


class LotRepository(LotRepositoryInterface):
    """Lot table access for one element kind"""

    def __init__(self, element_type: ElementType):
        self.element_type = element_type
        self.model = LOT_MODELS[element_type]
        self.item_model = ITEM_MODELS[element_type]

    def fifo_order(self):
        """Nearest expiry first, lots without expiry last, then oldest receipt"""
        return (
            self.model.expiry_date.is_(None),
            self.model.expiry_date.asc(),
            self.model.received_date.asc(),
            self.model.id.asc(),
        )

    def get_by_id(self, lot_id: int, lock: bool = False):
        query = self.model.query.filter_by(id=lot_id)
        if lock:
            # refresh rows already in the session with the locked values
            query = query.with_for_update().populate_existing()
        return query.first()

    def get_by_item_and_code(self, item_id: int, lot_code: str):
        return self.model.query.filter_by(item_id=item_id, lot_code=lot_code).first()

    def add(self, lot):
        """Stage a new lot; lot codes are unique per item"""
        if self.get_by_item_and_code(lot.item_id, lot.lot_code) is not None:
            raise ConflictError(f"Lot {lot.lot_code} already exists for item {lot.item_id}")

        db.session.add(lot)
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"Lot {lot.lot_code} already exists for item {lot.item_id}")
        return lot

    def delete(self, lot) -> None:
        db.session.delete(lot)
        db.session.flush()

    def list_by_item(self, item_id: int, status=None, lock: bool = False) -> List:
        """Lots of an item; filtering on Available yields the FIFO order"""
        query = self.model.query.filter_by(item_id=item_id)
        if status is not None:
            query = query.filter(self.model.status == LotStatus(status))
            query = query.order_by(*self.fifo_order())
        else:
            query = query.order_by(self.model.received_date.asc(), self.model.id.asc())
        if lock:
            query = query.with_for_update().populate_existing()
        return query.all()

    def lock_allocatable(self, item_id: int, today: date) -> List:
        """Available, unexpired lots with stock, locked and in FIFO order"""
        return self.model.query.filter(
            self.model.item_id == item_id,
            self.model.status == LotStatus.AVAILABLE,
            self.model.quantity_available > 0,
            db.or_(self.model.expiry_date.is_(None), self.model.expiry_date >= today)
        ).order_by(*self.fifo_order()).with_for_update().populate_existing().all()

    def search(self, filters: Dict) -> List:
        """Filter lots by item, status, code fragment and expiry window"""
        query = self.model.query

        if filters.get('item_id'):
            query = query.filter(self.model.item_id == filters['item_id'])

        if filters.get('status'):
            query = query.filter(self.model.status == LotStatus(filters['status']))

        if filters.get('lot_code'):
            query = query.filter(self.model.lot_code.ilike(f"%{filters['lot_code']}%"))

        if filters.get('expiry_from'):
            query = query.filter(self.model.expiry_date >= filters['expiry_from'])

        if filters.get('expiry_to'):
            query = query.filter(self.model.expiry_date <= filters['expiry_to'])

        if filters.get('available_only'):
            query = query.filter(self.model.quantity_available > 0)

        return query.order_by(*self.fifo_order()).all()

    def get_near_expiry(self, start: date, end: date) -> List:
        """(lot, item) pairs for Available lots with stock expiring in [start, end]"""
        return db.session.query(self.model, self.item_model).join(
            self.item_model, self.model.item_id == self.item_model.id
        ).filter(
            self.model.status == LotStatus.AVAILABLE,
            self.model.quantity_available > 0,
            self.model.expiry_date.isnot(None),
            self.model.expiry_date >= start,
            self.model.expiry_date <= end
        ).order_by(self.model.expiry_date.asc(), self.model.id.asc()).all()

    def sum_available(self, item_id: int):
        """Sum of quantity_available over the non-Blocked lots of an item"""
        total = db.session.query(func.sum(self.model.quantity_available)).filter(
            self.model.item_id == item_id,
            self.model.status != LotStatus.BLOCKED
        ).scalar()
        return Decimal(str(total)) if total is not None else Decimal('0')

    def has_blocking_references(self, lot) -> bool:
        """Receipts/consumptions (raw) or sales/returns (finished) naming the lot"""
        kinds = LOT_BLOCKING_REFERENCES[self.element_type]
        return bool(db.session.query(
            InventoryReference.query.filter(
                InventoryReference.element_type == self.element_type,
                InventoryReference.lot_id == lot.id,
                InventoryReference.reference_kind.in_(kinds)
            ).exists()
        ).scalar())
