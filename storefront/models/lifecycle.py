"""Roles, actions, badges and the purchase transition table."""

from enum import Enum

from storefront.models.purchase import PurchaseStatus


class Role(str, Enum):
    ANONYMOUS = 'anonymous'
    SELLER = 'seller'
    BUYER = 'buyer'
    THIRD_PARTY = 'third_party'


class Action(str, Enum):
    PURCHASE = 'purchase'
    SHIP = 'ship'
    CONFIRM_RECEIPT = 'confirm_receipt'
    CANCEL = 'cancel'
    MESSAGE = 'message'


class Badge(str, Enum):
    SOLD = 'sold'
    PENDING = 'pending'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELED = 'canceled'


# Anyone signed in who is not the seller may buy.
BUYER_CANDIDATES = frozenset({Role.BUYER, Role.THIRD_PARTY})

# (current status, action) -> (roles allowed to act, next status).
# A current status of None means the item has no purchase yet.
TRANSITIONS = {
    (None, Action.PURCHASE): (BUYER_CANDIDATES, PurchaseStatus.PENDING_SHIPMENT),
    (PurchaseStatus.CANCELED, Action.PURCHASE): (BUYER_CANDIDATES, PurchaseStatus.PENDING_SHIPMENT),
    (PurchaseStatus.PENDING_SHIPMENT, Action.SHIP): (frozenset({Role.SELLER}), PurchaseStatus.SHIPPED),
    (PurchaseStatus.PENDING_SHIPMENT, Action.CANCEL): (frozenset({Role.BUYER}), PurchaseStatus.CANCELED),
    (PurchaseStatus.SHIPPED, Action.CONFIRM_RECEIPT): (frozenset({Role.BUYER}), PurchaseStatus.DELIVERED),
}

STATUS_BADGES = {
    PurchaseStatus.PENDING_SHIPMENT: Badge.PENDING,
    PurchaseStatus.SHIPPED: Badge.SHIPPED,
    PurchaseStatus.DELIVERED: Badge.DELIVERED,
    PurchaseStatus.CANCELED: Badge.CANCELED,
}


def allowed_roles(status, action):
    """Roles that may take ``action`` from ``status`` (empty when none may)."""
    rule = TRANSITIONS.get((status, action))
    return rule[0] if rule else frozenset()


def next_status(status, action):
    """Status reached by taking ``action`` from ``status``, or None."""
    rule = TRANSITIONS.get((status, action))
    return rule[1] if rule else None
