"""
Repository layer - data access for items, lots and the movement ledger
"""

from .item_repository import ItemRepository
from .lot_repository import LotRepository
from .movement_repository import MovementRepository
from .reference_repository import ReferenceRepository

__all__ = ['ItemRepository', 'LotRepository', 'MovementRepository', 'ReferenceRepository']
