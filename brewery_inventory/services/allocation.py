"""
Allocation Engine - FIFO-by-expiry lot selection
"""

from datetime import date
from decimal import Decimal
from typing import List, Tuple
import logging

from brewery_inventory.models import ElementType
from brewery_inventory.repositories import LotRepository
from brewery_inventory.utils.errors import ValidationError
from brewery_inventory.utils.helpers import to_decimal

logger = logging.getLogger(__name__)


def plan_allocation(lots, quantity, today=None) -> List[Tuple[object, Decimal]]:
    """
    Draw quantity from lots in the order given.

    Lots that are not allocatable on `today` are skipped. The whole request is
    checked against the eligible total before any draw is planned, so a short
    request raises without producing a partial plan.

    Returns:
        List of (lot, quantity) draws summing to quantity
    """
    today = today or date.today()
    quantity = to_decimal(quantity)
    eligible = [lot for lot in lots if lot.is_allocatable(today)]

    available = sum((to_decimal(lot.quantity_available) for lot in eligible), Decimal('0'))
    if available < quantity:
        raise ValidationError(
            f"Insufficient quantity in available lots: requested {quantity}, available {available}",
            details={'quantity': [f'Only {available} available across eligible lots.']}
        )

    plan = []
    remaining = quantity
    for lot in eligible:
        if remaining <= 0:
            break
        draw = min(to_decimal(lot.quantity_available), remaining)
        plan.append((lot, draw))
        remaining -= draw

    return plan


class AllocationEngine:
    """Locks the eligible lots of an item and plans a FIFO draw over them"""

    def __init__(self, element_type: ElementType):
        self.element_type = element_type
        self.lot_repo = LotRepository(element_type)

    def allocate(self, item, quantity, today=None):
        today = today or date.today()
        lots = self.lot_repo.lock_allocatable(item.id, today)
        plan = plan_allocation(lots, quantity, today)
        logger.debug(
            f"Allocated {quantity} of {self.element_type.value}:{item.id} across "
            f"{[(lot.lot_code, str(draw)) for lot, draw in plan]}"
        )
        return plan
