# finsage/models/catalog.py
"""Purchasable catalog items: 1:1 sessions, short programs and financial tools."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String
import ulid

from ..database import Base


class CatalogItem(Base):
    """
    A purchasable offering.

    ``price`` is in whole currency units and is the server-side source of
    truth for order amounts; clients never dictate what they pay.
    """

    __tablename__ = "catalog_items"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(255), nullable=False, index=True)
    item_type = Column(String(32), nullable=False)
    price = Column(Integer, nullable=False)
    duration = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<CatalogItem {self.id} {self.item_type} price={self.price}>"
