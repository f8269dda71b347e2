"""
Inventory Reference Model

Purchase orders, receipt details, recipe lines, consumptions and sales live
in other services; they register here when they point at one of our items or
lots so deletes can decide between soft and hard removal.
"""

from datetime import datetime

from brewery_inventory.database import db
from .enums import ElementType, ReferenceKind


class InventoryReference(db.Model):
    """External document pointing at an item and optionally one of its lots"""
    __tablename__ = 'inventory_references'
    __table_args__ = (
        db.Index('ix_inventory_references_element', 'element_type', 'element_id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    element_type = db.Column(db.Enum(ElementType), nullable=False)
    element_id = db.Column(db.Integer, nullable=False)
    lot_id = db.Column(db.Integer, nullable=True, index=True)
    reference_kind = db.Column(db.Enum(ReferenceKind), nullable=False)
    document_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<InventoryReference {self.reference_kind.value} -> {self.element_type.value}:{self.element_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'element_type': self.element_type.value,
            'element_id': self.element_id,
            'lot_id': self.lot_id,
            'reference_kind': self.reference_kind.value,
            'document_id': self.document_id,
            'created_at': self.created_at.isoformat(),
        }
