"""Item (listing) schema."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from storefront.models.base import ApiModel


class ItemStatus(str, Enum):
    LISTED = 'listed'
    PAUSED = 'paused'
    IN_TRANSACTION = 'in_transaction'
    SOLD = 'sold'

    @property
    def is_sold(self):
        """Whether the server reports the item as taken."""
        return self in (ItemStatus.SOLD, ItemStatus.IN_TRANSACTION)


class Item(ApiModel):
    """A sellable listing. Price is in the smallest currency unit."""

    id: int
    title: str
    description: str = ''
    price: int = Field(ge=0)
    status: ItemStatus = ItemStatus.LISTED
    image_url: Optional[str] = None
    category_slug: Optional[str] = None
    seller_uid: Optional[str] = None
    co2_kg: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    def __repr__(self):
        return f'<Item {self.id}: {self.title} ({self.status.value})>'


class ItemList(ApiModel):
    items: list[Item]
    total: int = 0
