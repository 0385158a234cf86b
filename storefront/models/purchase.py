"""Purchase schema and the purchase status values."""

from datetime import datetime
from enum import Enum
from typing import Optional

from storefront.models.base import ApiModel
from storefront.models.item import Item


class PurchaseStatus(str, Enum):
    PENDING_SHIPMENT = 'pending_shipment'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELED = 'canceled'

    @property
    def is_active(self):
        """A canceled purchase no longer holds the item."""
        return self is not PurchaseStatus.CANCELED


class Purchase(ApiModel):
    """One transaction binding a buyer to an item through shipment."""

    id: int
    item_id: int
    buyer_uid: str
    seller_uid: str
    conversation_id: int
    status: PurchaseStatus
    shipping_qr_url: str = ''
    shipping_note: str = ''
    points_used: Optional[int] = None
    paid_yen: Optional[int] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self):
        return self.status.is_active

    def __repr__(self):
        return f'<Purchase {self.id} of Item {self.item_id}: {self.status.value}>'


class PurchaseWithItem(ApiModel):
    purchase: Purchase
    item: Item
