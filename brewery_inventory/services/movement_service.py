"""
Movement Service - the single write path for stock changes

Every change to a lot's quantity_available or an item's current_stock goes
through here and leaves one or more immutable ledger rows behind.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from sqlalchemy.exc import IntegrityError

from brewery_inventory.database import transaction
from brewery_inventory.models import (
    LOT_MODELS, ElementType, InventoryMovement, MovementType
)
from brewery_inventory.repositories import LotRepository, MovementRepository
from brewery_inventory.utils.errors import ConflictError, NotFoundError, ValidationError
from brewery_inventory.utils.helpers import check_quantity_scale, require_user_id, to_decimal
from brewery_inventory.utils.pagination import paginate_query
from .allocation import AllocationEngine
from .item_service import ItemService

logger = logging.getLogger(__name__)

BLOCK_REASON = 'Lot blocked'
UNBLOCK_REASON = 'Lot unblocked'


def parse_enum(enum_cls, value, field):
    """Coerce a value into an enum member with a field-level error on failure"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(
            f"Invalid {field}: {value}",
            details={field: [f"Must be one of: {', '.join(allowed)}."]}
        )


def generate_lot_code(prefix='RCV'):
    """Lot code for receipts posted without an explicit lot"""
    return f"{prefix}-{date.today().strftime('%Y%m%d')}-{uuid4().hex[:6].upper()}"


class MovementService:
    """Posts movements against items and lots and reads the ledger back"""

    def __init__(self):
        self.movement_repo = MovementRepository()

    def create_movement(self, movement_type, element_type, element_id, quantity, user_id,
                        lot_id=None, unit_of_measure=None, document_reference=None,
                        reference_id=None, reason=None, notes=None,
                        idempotency_key=None) -> List[InventoryMovement]:
        """
        Record a movement and apply it to the item and its lots atomically.

        Outbound movements without a lot draw FIFO across eligible lots and
        produce one ledger row per drawn lot. Replaying an idempotency key
        with the same request returns the rows recorded the first time.

        Returns:
            List of ledger rows, in split order
        """
        user_id = require_user_id(user_id)
        movement_type = parse_enum(MovementType, movement_type, 'movement_type')
        element_type = parse_enum(ElementType, element_type, 'element_type')
        quantity = self._positive_quantity(quantity)

        try:
            with transaction():
                if idempotency_key:
                    existing = self.movement_repo.get_by_idempotency_key(idempotency_key)
                    if existing:
                        self._check_replay(existing, movement_type, element_type, element_id, quantity, lot_id)
                        logger.info(f"Replayed movement for idempotency key {idempotency_key}")
                        return existing

                movements = self.post_movement(
                    movement_type, element_type, element_id, quantity, user_id,
                    lot_id=lot_id,
                    unit_of_measure=unit_of_measure,
                    document_reference=document_reference,
                    reference_id=reference_id,
                    reason=reason,
                    notes=notes,
                    idempotency_key=idempotency_key,
                )
        except (ValidationError, NotFoundError) as e:
            logger.warning(
                f"Rejected {movement_type.value} of {quantity} on {element_type.value}:{element_id}: {e.message}"
            )
            raise
        except IntegrityError:
            logger.warning(f"Concurrent use of idempotency key {idempotency_key}")
            raise ConflictError(f"Idempotency key {idempotency_key} is already in use")

        logger.info(
            f"Recorded {movement_type.value} of {quantity} on {element_type.value}:{element_id} "
            f"by user {user_id} in {len(movements)} row(s)"
        )
        return movements

    def post_movement(self, movement_type: MovementType, element_type: ElementType, element_id,
                      quantity, user_id, lot_id=None, unit_of_measure=None,
                      document_reference=None, reference_id=None, reason=None,
                      notes=None, idempotency_key=None, today=None) -> List[InventoryMovement]:
        """Apply a movement inside the caller's transaction; nothing is committed here"""
        today = today or date.today()
        quantity = self._positive_quantity(quantity)
        item_service = ItemService(element_type)
        lot_repo = LotRepository(element_type)

        item = item_service.lock(element_id)
        unit = self._resolve_unit(item, unit_of_measure)

        lot = None
        if lot_id is not None:
            lot = lot_repo.get_by_id(lot_id, lock=True)
            if not lot:
                raise NotFoundError(f"Lot {lot_id} not found")
            if lot.item_id != item.id:
                raise ValidationError(
                    f"Lot {lot.lot_code} does not belong to {item.code}",
                    details={'lot_id': ['Lot belongs to a different item.']}
                )
            if lot.is_blocked:
                raise ValidationError(
                    f"Lot {lot.lot_code} is blocked",
                    details={'lot_id': ['Blocked lots cannot take movements.']}
                )

        if movement_type.is_outbound:
            if lot is not None:
                if to_decimal(lot.quantity_available) < quantity:
                    raise ValidationError(
                        f"Insufficient lot quantity in {lot.lot_code}: available {lot.quantity_available}, requested {quantity}",
                        details={'quantity': [f'Only {lot.quantity_available} available in lot.']}
                    )
                draws = [(lot, quantity)]
            else:
                if to_decimal(item.current_stock) < quantity:
                    raise ValidationError(
                        f"Insufficient stock for {item.code}: current {item.current_stock}, requested {quantity}",
                        details={'quantity': [f'Only {item.current_stock} in stock.']}
                    )
                draws = AllocationEngine(element_type).allocate(item, quantity, today)

            for drawn_lot, drawn in draws:
                drawn_lot.apply_delta(-drawn)
            item_service.adjust_stock(item, quantity, 'out')
        else:
            if lot is None:
                lot = self._receipt_lot(element_type, item, quantity, lot_repo, today)
            elif to_decimal(lot.quantity_available) + quantity > to_decimal(lot.quantity):
                raise ValidationError(
                    f"Lot {lot.lot_code} cannot hold more than {lot.quantity}",
                    details={'quantity': [f'Lot capacity exceeded by {to_decimal(lot.quantity_available) + quantity - to_decimal(lot.quantity)}.']}
                )
            lot.apply_delta(quantity)
            draws = [(lot, quantity)]
            item_service.adjust_stock(item, quantity, 'in')

        rows = []
        for index, (drawn_lot, drawn) in enumerate(draws):
            rows.append(self.movement_repo.append(InventoryMovement(
                movement_type=movement_type,
                element_type=element_type,
                element_id=item.id,
                lot_id=drawn_lot.id,
                quantity=drawn,
                unit_of_measure=unit,
                document_reference=document_reference,
                reference_id=reference_id,
                reason=reason,
                user_id=user_id,
                notes=notes,
                idempotency_key=idempotency_key,
                split_index=index,
            )))
        return rows

    def post_block_transfer(self, item, lot, blocking: bool, user_id) -> Optional[InventoryMovement]:
        """
        Move a lot's available quantity out of (blocking) or back into the
        item aggregate. The lot's own quantity_available is left alone.
        """
        available = to_decimal(lot.quantity_available)
        if available <= 0:
            return None

        if blocking:
            movement_type, direction, reason = MovementType.NEGATIVE_ADJUSTMENT, 'out', BLOCK_REASON
        else:
            movement_type, direction, reason = MovementType.POSITIVE_ADJUSTMENT, 'in', UNBLOCK_REASON

        ItemService(lot.element_type).adjust_stock(item, available, direction)
        movement = self.movement_repo.append(InventoryMovement(
            movement_type=movement_type,
            element_type=lot.element_type,
            element_id=item.id,
            lot_id=lot.id,
            quantity=available,
            unit_of_measure=item.unit_of_measure,
            document_reference='LotStatusChange',
            reason=reason,
            user_id=user_id,
        ))
        logger.info(f"{reason}: {lot.lot_code} ({available} {item.unit_of_measure}) on {item.code}")
        return movement

    def get_movement(self, movement_id: int) -> InventoryMovement:
        movement = self.movement_repo.get_by_id(movement_id)
        if not movement:
            raise NotFoundError(f"Movement {movement_id} not found")
        return movement

    def list_movements(self, filters: Dict[str, Any], page=1, limit=20) -> Dict[str, Any]:
        """Paginated ledger rows matching the filters, newest first"""
        query = self.movement_repo.filtered_query(filters or {})
        return paginate_query(query, page, limit, serializer=lambda movement: movement.to_dict())

    def list_by_element_type(self, element_type, element_id=None, filters=None, page=1, limit=20) -> Dict[str, Any]:
        element_type = parse_enum(ElementType, element_type, 'element_type')
        filters = dict(filters or {})
        filters['element_type'] = element_type.value
        if element_id is not None:
            filters['element_id'] = element_id
        return self.list_movements(filters, page, limit)

    def _positive_quantity(self, quantity) -> Decimal:
        quantity = check_quantity_scale(quantity)
        if quantity <= 0:
            raise ValidationError(
                'Quantity must be greater than zero',
                details={'quantity': ['Must be greater than 0.']}
            )
        return quantity

    def _resolve_unit(self, item, unit_of_measure):
        if not unit_of_measure:
            return item.unit_of_measure
        if unit_of_measure.strip().lower() != item.unit_of_measure.lower():
            raise ValidationError(
                f"Unit {unit_of_measure} does not match {item.code} ({item.unit_of_measure})",
                details={'unit_of_measure': [f'Must be {item.unit_of_measure}.']}
            )
        return item.unit_of_measure

    def _receipt_lot(self, element_type, item, quantity, lot_repo, today):
        lot = LOT_MODELS[element_type](
            item_id=item.id,
            lot_code=generate_lot_code(),
            quantity=quantity,
            quantity_available=Decimal('0'),
            received_date=today,
        )
        lot_repo.add(lot)
        logger.debug(f"Opened receipt lot {lot.lot_code} for {item.code}")
        return lot

    def _check_replay(self, existing, movement_type, element_type, element_id, quantity, lot_id):
        first = existing[0]
        total = sum((to_decimal(row.quantity) for row in existing), Decimal('0'))
        matches = (
            first.movement_type == movement_type
            and first.element_type == element_type
            and first.element_id == int(element_id)
            and total == quantity
            and (lot_id is None or first.lot_id == int(lot_id))
        )
        if not matches:
            raise ConflictError(
                f"Idempotency key {first.idempotency_key} was already used for a different movement"
            )

