"""
Inventory Movement Model - append-only stock ledger
"""

from datetime import datetime

from brewery_inventory.database import db
from .enums import ElementType, MovementType


class InventoryMovement(db.Model):
    """
    One immutable stock-affecting event.

    quantity is always a positive magnitude; the direction comes from
    movement_type. lot_id carries no foreign key so the ledger keeps its
    history after a lot row is hard-deleted.
    """
    __tablename__ = 'inventory_movements'
    __table_args__ = (
        db.UniqueConstraint('idempotency_key', 'split_index', name='uq_inventory_movements_idempotency'),
        db.Index('ix_inventory_movements_element', 'element_type', 'element_id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    movement_type = db.Column(db.Enum(MovementType), nullable=False, index=True)
    element_type = db.Column(db.Enum(ElementType), nullable=False)
    element_id = db.Column(db.Integer, nullable=False)
    lot_id = db.Column(db.Integer, nullable=True, index=True)
    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    unit_of_measure = db.Column(db.String(20), nullable=False)
    document_reference = db.Column(db.String(50), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.String(100), nullable=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    idempotency_key = db.Column(db.String(100), nullable=True, index=True)
    split_index = db.Column(db.Integer, default=0, nullable=False)

    def __repr__(self):
        return f'<InventoryMovement {self.movement_type.value} {self.element_type.value}:{self.element_id} {self.quantity}>'

    @property
    def signed_quantity(self):
        """Quantity with the sign implied by the movement type"""
        return self.quantity if self.movement_type.is_inbound else -self.quantity

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'movement_type': self.movement_type.value,
            'element_type': self.element_type.value,
            'element_id': self.element_id,
            'lot_id': self.lot_id,
            'quantity': float(self.quantity),
            'unit_of_measure': self.unit_of_measure,
            'document_reference': self.document_reference,
            'reference_id': self.reference_id,
            'reason': self.reason,
            'user_id': self.user_id,
            'notes': self.notes,
            'idempotency_key': self.idempotency_key,
            'split_index': self.split_index,
        }
