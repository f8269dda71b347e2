"""
Model Enums
"""

from enum import Enum


class ElementType(Enum):
    RAW_MATERIAL = "RawMaterial"
    FINISHED_GOOD = "FinishedGood"


class ItemStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DEPLETED = "Depleted"


class LotStatus(Enum):
    AVAILABLE = "Available"
    DEPLETED = "Depleted"
    EXPIRED = "Expired"
    RESERVED = "Reserved"
    BLOCKED = "Blocked"


class MovementType(Enum):
    ENTRY = "Entry"
    EXIT = "Exit"
    POSITIVE_ADJUSTMENT = "PositiveAdjustment"
    NEGATIVE_ADJUSTMENT = "NegativeAdjustment"

    @property
    def is_inbound(self):
        return self in (MovementType.ENTRY, MovementType.POSITIVE_ADJUSTMENT)

    @property
    def is_outbound(self):
        return self in (MovementType.EXIT, MovementType.NEGATIVE_ADJUSTMENT)


class ReferenceKind(Enum):
    """External documents that can point at an item or a lot"""
    PURCHASE_ORDER = "PurchaseOrder"
    RECEIPT = "Receipt"
    RECIPE = "Recipe"
    CONSUMPTION = "Consumption"
    SALE = "Sale"
    RETURN = "Return"
