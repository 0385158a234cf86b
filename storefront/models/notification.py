"""Notification schema."""

from datetime import datetime
from typing import Optional

from storefront.models.base import ApiModel


class Notification(ApiModel):
    """User-scoped notification pointing at an item, conversation or purchase."""

    id: int
    type: str
    title: str
    body: str = ''
    item_id: Optional[int] = None
    conversation_id: Optional[int] = None
    purchase_id: Optional[int] = None
    read: bool = False
    created_at: datetime

    @property
    def unread_key(self):
        return self.id

    @property
    def is_unread(self):
        return not self.read

    def __repr__(self):
        return f'<Notification {self.id}: {self.type}>'


class NotificationFeed(ApiModel):
    notifications: list[Notification]
    unread_count: int = 0
