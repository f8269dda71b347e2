"""
Base Repository Interface - Abstract base classes
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, List, Optional

from brewery_inventory.models import InventoryMovement


class ItemRepositoryInterface(ABC):
    """Abstract base class for item repositories"""

    @abstractmethod
    def get_by_id(self, item_id: int, lock: bool = False):
        pass

    @abstractmethod
    def get_by_code(self, code: str):
        pass

    @abstractmethod
    def add(self, item):
        pass

    @abstractmethod
    def delete(self, item) -> None:
        pass

    @abstractmethod
    def search(self, filters: Dict) -> List:
        pass

    @abstractmethod
    def get_low_stock_items(self) -> List:
        pass

    @abstractmethod
    def has_dependents(self, item) -> bool:
        pass


class LotRepositoryInterface(ABC):
    """Abstract base class for lot repositories"""

    @abstractmethod
    def get_by_id(self, lot_id: int, lock: bool = False):
        pass

    @abstractmethod
    def get_by_item_and_code(self, item_id: int, lot_code: str):
        pass

    @abstractmethod
    def add(self, lot):
        pass

    @abstractmethod
    def delete(self, lot) -> None:
        pass

    @abstractmethod
    def list_by_item(self, item_id: int, status=None, lock: bool = False) -> List:
        pass

    @abstractmethod
    def search(self, filters: Dict) -> List:
        pass

    @abstractmethod
    def get_near_expiry(self, start: date, end: date) -> List:
        pass

    @abstractmethod
    def sum_available(self, item_id: int):
        pass

    @abstractmethod
    def has_blocking_references(self, lot) -> bool:
        pass


class MovementRepositoryInterface(ABC):
    """Abstract base class for the movement ledger"""

    @abstractmethod
    def append(self, movement: InventoryMovement) -> InventoryMovement:
        pass

    @abstractmethod
    def get_by_id(self, movement_id: int) -> Optional[InventoryMovement]:
        pass

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> List[InventoryMovement]:
        pass

    @abstractmethod
    def filtered_query(self, filters: Dict):
        pass

    @abstractmethod
    def latest_timestamp(self) -> Optional[datetime]:
        pass
