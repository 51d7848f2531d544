# finsage/repositories/catalog_repository.py
"""Catalog item data access."""

from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..models.catalog import CatalogItem
from .base_repository import BaseRepository


class CatalogRepository(BaseRepository[CatalogItem]):
    def __init__(self, db: Session):
        super().__init__(db, CatalogItem)

    def get_active(self, item_id: str) -> Optional[CatalogItem]:
        return self._build_query().filter(CatalogItem.id == item_id, CatalogItem.is_active.is_(True)).first()

    def get_title_index(self) -> Dict[str, CatalogItem]:
        """Map of exact title to item, used to resolve legacy course tags."""
        items = self._execute_query(self._build_query().order_by(CatalogItem.created_at))
        index: Dict[str, CatalogItem] = {}
        for item in items:
            # First item wins when titles collide
            index.setdefault(item.title, item)
        return index
