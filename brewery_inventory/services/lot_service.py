"""
Lot Service - lot lifecycle for raw materials and finished goods
"""

from decimal import Decimal
from typing import Any, Dict, List
import logging

from brewery_inventory.database import transaction
from brewery_inventory.models import LOT_MODELS, ElementType, LotStatus, MovementType
from brewery_inventory.repositories import LotRepository
from brewery_inventory.utils.errors import NotFoundError, ValidationError
from brewery_inventory.utils.helpers import check_quantity_scale, require_user_id, to_date, to_decimal
from .item_service import ItemService
from .movement_service import MovementService, parse_enum

logger = logging.getLogger(__name__)

COMMON_FIELDS = ('received_date', 'expiry_date', 'notes')

KIND_FIELDS = {
    ElementType.RAW_MATERIAL: ('supplier_id', 'production_date', 'purchase_order_id'),
    ElementType.FINISHED_GOOD: ('production_batch_id', 'best_before_date', 'location'),
}

DATE_FIELDS = ('received_date', 'expiry_date', 'production_date', 'best_before_date')

IMMUTABLE_FIELDS = ('id', 'item_id', 'lot_code', 'quantity', 'quantity_available')


class LotService:
    """Business logic for the lots of one element kind"""

    def __init__(self, element_type: ElementType):
        self.element_type = ElementType(element_type)
        self.model = LOT_MODELS[self.element_type]
        self.lot_repo = LotRepository(self.element_type)
        self.item_service = ItemService(self.element_type)
        self.movement_service = MovementService()
        self.allowed_fields = COMMON_FIELDS + KIND_FIELDS[self.element_type]

    def _clean(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = {key: value for key, value in fields.items() if key in self.allowed_fields}
        for field in DATE_FIELDS:
            if field in data:
                data[field] = to_date(data[field])
        return data

    def create(self, fields: Dict[str, Any], user_id):
        """
        Create a lot and post its opening balance as an Entry movement.

        The row starts empty so the ledger is the only thing that ever moves
        quantity_available.
        """
        user_id = require_user_id(user_id)
        quantity = check_quantity_scale(fields.get('quantity'), 'quantity')
        if quantity <= 0:
            raise ValidationError('Lot quantity must be greater than zero',
                                  details={'quantity': ['Must be greater than 0.']})

        initial = fields.get('quantity_available')
        initial = quantity if initial is None else check_quantity_scale(initial, 'quantity_available')
        if initial < 0 or initial > quantity:
            raise ValidationError(
                'quantity_available must be between 0 and quantity',
                details={'quantity_available': [f'Must be between 0 and {quantity}.']}
            )

        lot_code = fields.get('lot_code')
        if not lot_code:
            raise ValidationError('Lot code is required', details={'lot_code': ['Missing data for required field.']})

        data = {key: value for key, value in self._clean(fields).items() if value is not None}
        with transaction():
            item = self.item_service.lock(fields.get('item_id'))
            lot = self.lot_repo.add(self.model(
                item_id=item.id,
                lot_code=lot_code,
                quantity=quantity,
                quantity_available=Decimal('0'),
                **data
            ))

            if initial > 0:
                document = 'PurchaseOrder' if data.get('purchase_order_id') else 'ManualReceipt'
                self.movement_service.post_movement(
                    MovementType.ENTRY, self.element_type, item.id, initial, user_id,
                    lot_id=lot.id,
                    document_reference=document,
                    reference_id=data.get('purchase_order_id'),
                    reason='Lot received',
                )
            else:
                lot.status = LotStatus.DEPLETED

        logger.info(f"Created lot {lot.lot_code} for {item.code}: {initial}/{quantity}")
        return lot

    def get(self, lot_id: int):
        lot = self.lot_repo.get_by_id(lot_id)
        if not lot:
            raise NotFoundError(f"Lot {lot_id} not found")
        return lot

    def list_by_item(self, item_id: int, status=None) -> List:
        """Lots of an item; with status=Available the result is in FIFO order"""
        self.item_service.get(item_id)
        if status is not None:
            status = parse_enum(LotStatus, status, 'status')
        return self.lot_repo.list_by_item(item_id, status=status)

    def list(self, filters: Dict[str, Any]) -> List:
        filters = dict(filters or {})
        if filters.get('status'):
            filters['status'] = parse_enum(LotStatus, filters['status'], 'status').value
        return self.lot_repo.search(filters)

    def update(self, lot_id: int, patch: Dict[str, Any], user_id):
        """
        Update lot metadata and status.

        Entering or leaving Blocked moves the lot's available quantity out of
        or back into the item aggregate through the ledger.
        """
        user_id = require_user_id(user_id)
        rejected = [field for field in IMMUTABLE_FIELDS if field in patch]
        if rejected:
            raise ValidationError(
                'Immutable fields cannot be updated',
                details={field: ['Field cannot be modified.'] for field in rejected}
            )

        new_status = None
        if patch.get('status') is not None:
            new_status = parse_enum(LotStatus, patch['status'], 'status')
            if new_status == LotStatus.DEPLETED:
                raise ValidationError(
                    'Depleted is set automatically when a lot runs out',
                    details={'status': ['Cannot be set to Depleted manually.']}
                )

        data = self._clean(patch)
        with transaction():
            item, lot = self._lock_item_and_lot(lot_id)

            for key, value in data.items():
                setattr(lot, key, value)

            if new_status is not None and new_status != lot.status:
                self._change_status(item, lot, new_status, user_id)

        logger.info(f"Updated lot {lot.lot_code}: {sorted(patch)}")
        return lot

    def delete(self, lot_id: int, user_id) -> Dict[str, Any]:
        """
        Remove a lot.

        Lots referenced by receipts/consumptions (raw materials) or
        sales/returns (finished goods) are blocked instead. Otherwise the
        remaining balance is written off with an Exit movement and the row
        is deleted; the ledger keeps its history.
        """
        user_id = require_user_id(user_id)
        with transaction():
            item, lot = self._lock_item_and_lot(lot_id)
            lot_code = lot.lot_code

            if self.lot_repo.has_blocking_references(lot):
                if not lot.is_blocked:
                    self._change_status(item, lot, LotStatus.BLOCKED, user_id)
                result = {'id': lot.id, 'deleted': 'soft', 'status': lot.status.value}
            else:
                if not lot.is_blocked and to_decimal(lot.quantity_available) > 0:
                    self.movement_service.post_movement(
                        MovementType.EXIT, self.element_type, item.id, lot.quantity_available, user_id,
                        lot_id=lot.id,
                        document_reference='LotDeletion',
                        reason='Lot deleted',
                    )
                self.lot_repo.delete(lot)
                result = {'id': lot_id, 'deleted': 'hard'}

        logger.info(f"Deleted lot {lot_code} ({result['deleted']})")
        return result

    def _lock_item_and_lot(self, lot_id: int):
        """Lock the owning item before the lot, the same order the ledger uses"""
        lot = self.get(lot_id)
        item = self.item_service.lock(lot.item_id)
        lot = self.lot_repo.get_by_id(lot_id, lock=True)
        if not lot:
            raise NotFoundError(f"Lot {lot_id} not found")
        return item, lot

    def _change_status(self, item, lot, new_status: LotStatus, user_id):
        if new_status == LotStatus.BLOCKED:
            self.movement_service.post_block_transfer(item, lot, blocking=True, user_id=user_id)
            lot.block()
            return

        if lot.is_blocked:
            self.movement_service.post_block_transfer(item, lot, blocking=False, user_id=user_id)

        if new_status == LotStatus.AVAILABLE and to_decimal(lot.quantity_available) == 0:
            new_status = LotStatus.DEPLETED
        lot.status = new_status
