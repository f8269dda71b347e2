"""
Movement Repository Implementation - append-only ledger access
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func

from brewery_inventory.database import db
from brewery_inventory.models import ElementType, InventoryMovement, MovementType
from .base import MovementRepositoryInterface


class MovementRepository(MovementRepositoryInterface):
    """Ledger rows are only ever inserted; there is no update or delete"""

    def append(self, movement: InventoryMovement) -> InventoryMovement:
        """Stamp the row with a timestamp no earlier than the latest one and stage it"""
        now = datetime.utcnow()
        latest = self.latest_timestamp()
        if latest is not None and now <= latest:
            now = latest + timedelta(microseconds=1)
        movement.timestamp = now

        db.session.add(movement)
        db.session.flush()
        return movement

    def get_by_id(self, movement_id: int) -> Optional[InventoryMovement]:
        return db.session.get(InventoryMovement, movement_id)

    def get_by_idempotency_key(self, key: str) -> List[InventoryMovement]:
        return InventoryMovement.query.filter_by(idempotency_key=key).order_by(
            InventoryMovement.split_index.asc()
        ).all()

    def latest_timestamp(self) -> Optional[datetime]:
        return db.session.query(func.max(InventoryMovement.timestamp)).scalar()

    def filtered_query(self, filters: Dict):
        """Movements matching the filters, newest first with id as tie-breaker"""
        query = InventoryMovement.query

        if filters.get('date_from'):
            query = query.filter(InventoryMovement.timestamp >= filters['date_from'])

        if filters.get('date_to'):
            query = query.filter(InventoryMovement.timestamp <= filters['date_to'])

        if filters.get('movement_type'):
            query = query.filter(InventoryMovement.movement_type == MovementType(filters['movement_type']))

        if filters.get('element_type'):
            query = query.filter(InventoryMovement.element_type == ElementType(filters['element_type']))

        if filters.get('element_id'):
            query = query.filter(InventoryMovement.element_id == filters['element_id'])

        if filters.get('lot_id'):
            query = query.filter(InventoryMovement.lot_id == filters['lot_id'])

        if filters.get('user_id'):
            query = query.filter(InventoryMovement.user_id == filters['user_id'])

        if filters.get('document_reference'):
            query = query.filter(
                InventoryMovement.document_reference.ilike(f"%{filters['document_reference']}%")
            )

        return query.order_by(InventoryMovement.timestamp.desc(), InventoryMovement.id.desc())

    def totals_by_type(self, filters: Dict):
        """(movement_type, count, quantity) per movement type"""
        subquery = self.filtered_query(filters).order_by(None).subquery()
        return db.session.query(
            subquery.c.movement_type,
            func.count(subquery.c.id),
            func.sum(subquery.c.quantity)
        ).group_by(subquery.c.movement_type).all()

    def counts_by_element_type(self, filters: Dict):
        subquery = self.filtered_query(filters).order_by(None).subquery()
        return db.session.query(
            subquery.c.element_type,
            func.count(subquery.c.id)
        ).group_by(subquery.c.element_type).all()

    def counts_by_user(self, filters: Dict):
        subquery = self.filtered_query(filters).order_by(None).subquery()
        return db.session.query(
            subquery.c.user_id,
            func.count(subquery.c.id)
        ).group_by(subquery.c.user_id).order_by(func.count(subquery.c.id).desc()).all()

    def counts_by_day(self, filters: Dict):
        """(day, count) newest day first"""
        subquery = self.filtered_query(filters).order_by(None).subquery()
        day = func.date(subquery.c.timestamp)
        return db.session.query(day, func.count(subquery.c.id)).group_by(day).order_by(day.desc()).all()
