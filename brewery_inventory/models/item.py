"""
Item Models - raw materials and finished goods
"""

from datetime import datetime
from decimal import Decimal

from brewery_inventory.database import db
from .enums import ElementType, ItemStatus


class ItemMixin:
    """Columns shared by every stock-keeping item table"""

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    unit_of_measure = db.Column(db.String(20), nullable=False)
    current_stock = db.Column(db.Numeric(14, 3), default=Decimal('0'), nullable=False)
    minimum_stock = db.Column(db.Numeric(14, 3), default=Decimal('0'), nullable=False)
    status = db.Column(db.Enum(ItemStatus), default=ItemStatus.ACTIVE, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    element_type = None

    def __repr__(self):
        return f'<{type(self).__name__} {self.code}>'

    @property
    def is_low_stock(self):
        """Check if item is at or below its minimum stock"""
        return (self.current_stock or 0) <= (self.minimum_stock or 0)

    @property
    def deficit(self):
        return (self.minimum_stock or 0) - (self.current_stock or 0)

    def soft_delete(self):
        """Active/Depleted -> Inactive; the row stays for referencing documents"""
        self.status = ItemStatus.INACTIVE
        self.updated_at = datetime.utcnow()

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'element_type': self.element_type.value,
            'code': self.code,
            'name': self.name,
            'unit_of_measure': self.unit_of_measure,
            'current_stock': float(self.current_stock or 0),
            'minimum_stock': float(self.minimum_stock or 0),
            'status': self.status.value,
            'is_low_stock': self.is_low_stock,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class RawMaterial(ItemMixin, db.Model):
    """Malt, hops, yeast, adjuncts and packaging supplies"""
    __tablename__ = 'raw_materials'

    element_type = ElementType.RAW_MATERIAL

    material_type = db.Column(db.String(50), nullable=False, index=True)
    subtype = db.Column(db.String(50), nullable=True)
    location = db.Column(db.String(100), nullable=True)
    attributes = db.Column(db.JSON, nullable=True)

    lots = db.relationship('RawMaterialLot', back_populates='item', lazy=True,
                           order_by='RawMaterialLot.received_date')

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'material_type': self.material_type,
            'subtype': self.subtype,
            'location': self.location,
            'attributes': self.attributes,
        })
        return data


class FinishedGood(ItemMixin, db.Model):
    """Packaged beer ready for sale"""
    __tablename__ = 'finished_goods'

    element_type = ElementType.FINISHED_GOOD

    style = db.Column(db.String(50), nullable=False, index=True)
    presentation = db.Column(db.String(50), nullable=False)
    capacity = db.Column(db.Numeric(10, 3), nullable=False)
    description = db.Column(db.Text, nullable=True)

    lots = db.relationship('FinishedGoodLot', back_populates='item', lazy=True,
                           order_by='FinishedGoodLot.received_date')

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'style': self.style,
            'presentation': self.presentation,
            'capacity': float(self.capacity) if self.capacity is not None else None,
            'description': self.description,
        })
        return data
