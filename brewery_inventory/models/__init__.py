"""
Models package - Database models for the brewery inventory service
"""

# Import database instance
from brewery_inventory.database import db

# Import enums first
from .enums import ElementType, ItemStatus, LotStatus, MovementType, ReferenceKind

# Import models
from .item import RawMaterial, FinishedGood
from .lot import RawMaterialLot, FinishedGoodLot
from .movement import InventoryMovement
from .reference import InventoryReference
from .permission import UserPermission

ITEM_MODELS = {
    ElementType.RAW_MATERIAL: RawMaterial,
    ElementType.FINISHED_GOOD: FinishedGood,
}

LOT_MODELS = {
    ElementType.RAW_MATERIAL: RawMaterialLot,
    ElementType.FINISHED_GOOD: FinishedGoodLot,
}

# Document kinds that may point at each element kind
REFERENCE_KINDS = {
    ElementType.RAW_MATERIAL: (
        ReferenceKind.PURCHASE_ORDER, ReferenceKind.RECEIPT, ReferenceKind.RECIPE, ReferenceKind.CONSUMPTION,
    ),
    ElementType.FINISHED_GOOD: (ReferenceKind.SALE, ReferenceKind.RETURN),
}

# References that keep a lot from being hard-deleted, per element kind
LOT_BLOCKING_REFERENCES = {
    ElementType.RAW_MATERIAL: (ReferenceKind.RECEIPT, ReferenceKind.CONSUMPTION),
    ElementType.FINISHED_GOOD: (ReferenceKind.SALE, ReferenceKind.RETURN),
}

# Export all models and enums
__all__ = [
    'db',
    'ElementType',
    'ItemStatus',
    'LotStatus',
    'MovementType',
    'ReferenceKind',
    'RawMaterial',
    'FinishedGood',
    'RawMaterialLot',
    'FinishedGoodLot',
    'InventoryMovement',
    'InventoryReference',
    'UserPermission',
    'ITEM_MODELS',
    'LOT_MODELS',
    'LOT_BLOCKING_REFERENCES',
    'REFERENCE_KINDS',
]
