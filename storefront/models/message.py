"""Conversation and Message schemas for item messaging."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from storefront.models.base import ApiModel


class Conversation(ApiModel):
    """A channel between one item's seller and one buyer."""

    conversation_id: int
    item_id: int
    seller_uid: str
    buyer_uid: str
    has_unread: bool = False

    @property
    def unread_key(self):
        return self.conversation_id

    @property
    def is_unread(self):
        return self.has_unread

    def get_other_participant(self, uid):
        """Get the uid on the other end of the conversation."""
        if self.seller_uid == uid:
            return self.buyer_uid
        return self.seller_uid


class Message(ApiModel):
    """A message in a conversation. Replies point at their parent."""

    id: int
    conversation_id: int
    sender_uid: str
    sender_name: Optional[str] = None
    sender_icon_url: Optional[str] = None
    parent_message_id: Optional[int] = None
    depth: int = Field(0, ge=0)
    body: str
    created_at: datetime

    @property
    def display_name(self):
        return self.sender_name or self.sender_uid

    def __repr__(self):
        return f'<Message {self.id} in Conversation {self.conversation_id}>'
