"""
Reference Repository - external documents pointing at items and lots
"""

from typing import List

from brewery_inventory.database import db
from brewery_inventory.models import ElementType, InventoryReference


class ReferenceRepository:

    def __init__(self, element_type: ElementType):
        self.element_type = element_type

    def add(self, reference: InventoryReference) -> InventoryReference:
        db.session.add(reference)
        db.session.flush()
        return reference

    def list_by_item(self, item_id: int) -> List[InventoryReference]:
        return InventoryReference.query.filter_by(
            element_type=self.element_type, element_id=item_id
        ).order_by(InventoryReference.id.asc()).all()
