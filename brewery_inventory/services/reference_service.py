"""
Reference Service - registration of external documents that point at our stock

Purchase orders, receipts, recipes and consumptions point at raw materials;
sales and returns point at finished goods. Registered references turn item
deletes into soft deletes and lot deletes into blocks.
"""

from typing import List, Optional
import logging

from brewery_inventory.database import transaction
from brewery_inventory.models import REFERENCE_KINDS, ElementType, InventoryReference, ReferenceKind
from brewery_inventory.repositories import LotRepository, ReferenceRepository
from brewery_inventory.utils.errors import NotFoundError, ValidationError
from .item_service import ItemService
from .movement_service import parse_enum

logger = logging.getLogger(__name__)


class ReferenceService:

    def __init__(self, element_type: ElementType):
        self.element_type = ElementType(element_type)
        self.item_service = ItemService(self.element_type)
        self.lot_repo = LotRepository(self.element_type)
        self.reference_repo = ReferenceRepository(self.element_type)

    def register(self, item_id: int, reference_kind, document_id: Optional[int] = None,
                 lot_id: Optional[int] = None) -> InventoryReference:
        """Record that a document of reference_kind points at the item (and optionally one of its lots)"""
        kind = parse_enum(ReferenceKind, reference_kind, 'reference_kind')
        allowed = REFERENCE_KINDS[self.element_type]
        if kind not in allowed:
            raise ValidationError(
                f"{kind.value} documents cannot reference {self.element_type.value} items",
                details={'reference_kind': [f"Must be one of: {', '.join(k.value for k in allowed)}."]}
            )

        with transaction():
            item = self.item_service.get(item_id)
            if lot_id is not None:
                lot = self.lot_repo.get_by_id(lot_id)
                if not lot:
                    raise NotFoundError(f"Lot {lot_id} not found")
                if lot.item_id != item.id:
                    raise ValidationError(
                        f"Lot {lot.lot_code} does not belong to {item.code}",
                        details={'lot_id': ['Lot belongs to a different item.']}
                    )

            reference = self.reference_repo.add(InventoryReference(
                element_type=self.element_type,
                element_id=item.id,
                lot_id=lot_id,
                reference_kind=kind,
                document_id=document_id,
            ))

        logger.info(f"Registered {kind.value} {document_id} against {item.code}")
        return reference

    def list_by_item(self, item_id: int) -> List[InventoryReference]:
        self.item_service.get(item_id)
        return self.reference_repo.list_by_item(item_id)
