"""
Lot Models - traceable batches of raw materials and finished goods
"""

from datetime import datetime, date
from decimal import Decimal

from brewery_inventory.database import db
from brewery_inventory.utils.helpers import to_decimal
from .enums import ElementType, LotStatus


class LotMixin:
    """Columns and state transitions shared by both lot tables"""

    id = db.Column(db.Integer, primary_key=True)
    lot_code = db.Column(db.String(50), nullable=False, index=True)
    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    quantity_available = db.Column(db.Numeric(14, 3), default=Decimal('0'), nullable=False)
    received_date = db.Column(db.Date, default=date.today, nullable=False)
    expiry_date = db.Column(db.Date, nullable=True, index=True)
    status = db.Column(db.Enum(LotStatus), default=LotStatus.AVAILABLE, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    element_type = None

    def __repr__(self):
        return f'<{type(self).__name__} {self.lot_code} {self.quantity_available}/{self.quantity}>'

    @property
    def is_blocked(self):
        return self.status == LotStatus.BLOCKED

    def is_expired(self, today=None):
        """True once the expiry date has passed, whatever the stored status says"""
        today = today or date.today()
        return self.expiry_date is not None and self.expiry_date < today

    def is_allocatable(self, today=None):
        """Eligible for FIFO selection"""
        return (
            self.status == LotStatus.AVAILABLE
            and not self.is_expired(today)
            and self.quantity_available > 0
        )

    def apply_delta(self, delta):
        """
        Move quantity_available by delta and keep the Depleted/Available
        status in step with it. Callers validate bounds beforehand.
        """
        new_available = to_decimal(self.quantity_available) + to_decimal(delta)
        if new_available < 0 or new_available > to_decimal(self.quantity):
            raise ValueError(
                f"Lot {self.lot_code} quantity_available would leave [0, {self.quantity}]: {new_available}"
            )
        self.quantity_available = new_available

        if new_available == 0 and self.status == LotStatus.AVAILABLE:
            self.status = LotStatus.DEPLETED
        elif new_available > 0 and self.status == LotStatus.DEPLETED:
            self.status = LotStatus.AVAILABLE
        self.updated_at = datetime.utcnow()

    def block(self):
        self.status = LotStatus.BLOCKED
        self.updated_at = datetime.utcnow()

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'element_type': self.element_type.value,
            'item_id': self.item_id,
            'lot_code': self.lot_code,
            'quantity': float(self.quantity),
            'quantity_available': float(self.quantity_available),
            'received_date': self.received_date.isoformat() if self.received_date else None,
            'expiry_date': self.expiry_date.isoformat() if self.expiry_date else None,
            'status': self.status.value,
            'is_expired': self.is_expired(),
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class RawMaterialLot(LotMixin, db.Model):
    """Lot of a raw material received from a supplier"""
    __tablename__ = 'raw_material_lots'
    __table_args__ = (
        db.UniqueConstraint('item_id', 'lot_code', name='uq_raw_material_lots_item_code'),
    )

    element_type = ElementType.RAW_MATERIAL

    item_id = db.Column(db.Integer, db.ForeignKey('raw_materials.id'), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, nullable=True)
    production_date = db.Column(db.Date, nullable=True)
    purchase_order_id = db.Column(db.Integer, nullable=True)

    item = db.relationship('RawMaterial', back_populates='lots')

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'supplier_id': self.supplier_id,
            'production_date': self.production_date.isoformat() if self.production_date else None,
            'purchase_order_id': self.purchase_order_id,
        })
        return data


class FinishedGoodLot(LotMixin, db.Model):
    """Packaged lot of a finished good; received_date is the packaging date"""
    __tablename__ = 'finished_good_lots'
    __table_args__ = (
        db.UniqueConstraint('item_id', 'lot_code', name='uq_finished_good_lots_item_code'),
    )

    element_type = ElementType.FINISHED_GOOD

    item_id = db.Column(db.Integer, db.ForeignKey('finished_goods.id'), nullable=False, index=True)
    production_batch_id = db.Column(db.Integer, nullable=True)
    best_before_date = db.Column(db.Date, nullable=True)
    location = db.Column(db.String(100), nullable=True)

    item = db.relationship('FinishedGood', back_populates='lots')

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'production_batch_id': self.production_batch_id,
            'best_before_date': self.best_before_date.isoformat() if self.best_before_date else None,
            'location': self.location,
        })
        return data
