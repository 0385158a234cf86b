"""Schemas for records owned by the marketplace API."""

from .base import ApiModel, parse, parse_list
from .item import Item, ItemList, ItemStatus
from .purchase import Purchase, PurchaseStatus, PurchaseWithItem
from .lifecycle import Action, Badge, Role
from .message import Conversation, Message
from .notification import Notification, NotificationFeed
from .user import PublicUser, Revenue, TreePoints

__all__ = [
    'ApiModel', 'parse', 'parse_list',
    'Item', 'ItemList', 'ItemStatus',
    'Purchase', 'PurchaseStatus', 'PurchaseWithItem',
    'Action', 'Badge', 'Role',
    'Conversation', 'Message',
    'Notification', 'NotificationFeed',
    'PublicUser', 'Revenue', 'TreePoints',
]
