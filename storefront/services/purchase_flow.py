"""Purchase lifecycle rules as seen by the person looking at an item.

Everything here is a pure function of the latest fetched snapshot (item,
optional purchase, viewer uid). The marketplace API owns the real state
machine; these rules decide which buttons and badges the UI shows and reject
requests that can no longer succeed before they reach the network.

Stale item status policy: when the visible purchase is canceled, a
``sold``/``in_transaction`` item status is treated as stale for gating, so
``purchase`` is offered again. The item status itself is reported unchanged.
"""

import math
from dataclasses import dataclass
from typing import Optional

from storefront.errors import ConflictError, ValidationError
from storefront.models import Action, Badge, Item, Purchase, PurchaseStatus, Role
from storefront.models.lifecycle import STATUS_BADGES, allowed_roles
from storefront.services.rewards import Reward, format_tree_years


def resolve_role(viewer_uid: Optional[str], item: Item, purchase: Optional[Purchase] = None) -> Role:
    """Work out who is looking at the item."""
    if not viewer_uid:
        return Role.ANONYMOUS
    if item.seller_uid is not None and viewer_uid == item.seller_uid:
        return Role.SELLER
    if purchase is not None and viewer_uid == purchase.buyer_uid:
        return Role.BUYER
    return Role.THIRD_PARTY


def has_active_purchase(purchase: Optional[Purchase]) -> bool:
    return purchase is not None and purchase.is_active


def is_sold_for_display(item: Item, purchase: Optional[Purchase] = None) -> bool:
    """Whether the item should read as sold."""
    return item.status.is_sold or has_active_purchase(purchase)


def is_purchase_blocked(item: Item, purchase: Optional[Purchase] = None) -> bool:
    """Whether a new purchase is impossible given the snapshot."""
    if has_active_purchase(purchase):
        return True
    if purchase is not None:
        # canceled: a lagging sold flag on the item does not lock it
        return False
    return item.status.is_sold


def eligible_actions(purchase: Optional[Purchase], item: Item, role: Role) -> frozenset:
    """The exact set of actions the viewer may take right now."""
    if role is Role.ANONYMOUS:
        return frozenset()

    actions = set()
    status = purchase.status if purchase is not None else None

    if role in allowed_roles(status, Action.PURCHASE) and not is_purchase_blocked(item, purchase):
        actions.add(Action.PURCHASE)

    if purchase is not None:
        for action in (Action.SHIP, Action.CANCEL, Action.CONFIRM_RECEIPT):
            if role in allowed_roles(status, action):
                actions.add(action)

    if role is Role.BUYER:
        actions.add(Action.MESSAGE)
    elif role is Role.SELLER:
        if purchase is not None:
            actions.add(Action.MESSAGE)
    elif not is_sold_for_display(item, purchase):
        actions.add(Action.MESSAGE)

    return frozenset(actions)


def badges(purchase: Optional[Purchase], item: Item, role: Role) -> frozenset:
    """Status badges for the viewer.

    Buyer and seller of a visible purchase see its status; everyone else sees
    a read-only SOLD badge once the item is taken.
    """
    if purchase is not None and role in (Role.BUYER, Role.SELLER):
        return frozenset({STATUS_BADGES[purchase.status]})
    if is_sold_for_display(item, purchase):
        return frozenset({Badge.SOLD})
    return frozenset()


def check_action(action: Action, purchase: Optional[Purchase], item: Item, role: Role):
    """Raise ConflictError when ``action`` is not available to ``role``."""
    if action in eligible_actions(purchase, item, role):
        return
    if role is Role.ANONYMOUS:
        raise ConflictError('Please sign in to continue.')
    if action is Action.PURCHASE:
        if role is Role.SELLER:
            raise ConflictError('You cannot buy your own item.')
        if is_purchase_blocked(item, purchase):
            raise ConflictError('This item has already been purchased.')
    if action is Action.MESSAGE and role is Role.SELLER:
        raise ConflictError('You cannot message yourself about your own item.')
    status = purchase.status.value if purchase is not None else 'none'
    raise ConflictError(f"Cannot {action.value.replace('_', ' ')} while the purchase is {status}.")


# ============ POINTS PAYMENT ============

@dataclass(frozen=True)
class PaymentPlan:
    price: int
    points_used: int
    payable: int

    def to_dict(self):
        return {'price': self.price, 'points_used': self.points_used, 'payable': self.payable}


def parse_points(points_input, price: int) -> int:
    """Parse the points box the way the checkout form does.

    Blank or non-numeric input counts as 0; fractions are floored and the
    result is clamped to ``[0, price]``.
    """
    if points_input is None or isinstance(points_input, bool):
        return 0
    try:
        value = float(str(points_input).strip())
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, min(price, math.floor(value)))


def quote(price: int, points_input) -> PaymentPlan:
    points = parse_points(points_input, price)
    return PaymentPlan(price, points, max(0, price - points))


def plan_payment(price: int, points_used=None, balance: Optional[int] = None) -> PaymentPlan:
    """Validate a submitted points amount.

    ``points_used`` must be an integer in ``[0, price]`` and, when the
    balance is known, no more than the balance.
    """
    if points_used is None:
        return PaymentPlan(price, 0, price)
    if isinstance(points_used, bool) or not isinstance(points_used, int):
        raise ValidationError('Points must be a whole number.')
    if points_used < 0:
        raise ValidationError('Points cannot be negative.')
    if points_used > price:
        raise ValidationError('You cannot use more points than the price.')
    if balance is not None and points_used > balance:
        raise ValidationError(
            'Insufficient points. Use fewer points or wait for points to be granted.'
        )
    return PaymentPlan(price, points_used, max(0, price - points_used))


def paid_summary(purchase: Purchase, price: int) -> dict:
    """What the buyer actually paid for a purchase."""
    points_used = purchase.points_used or 0
    if purchase.paid_yen is not None:
        paid = purchase.paid_yen
    else:
        paid = price - points_used
    return {'paid_yen': max(0, paid), 'points_used': points_used}


# ============ DISPLAY TEXT ============

def headline(role: Role, sold: bool) -> str:
    """Title of the purchase panel."""
    if role is Role.ANONYMOUS:
        return 'Sold' if sold else 'Checkout'
    if role is Role.SELLER:
        return 'Transaction with buyer' if sold else 'Awaiting purchase'
    if sold and role is not Role.BUYER:
        return 'Sold'
    return 'Checkout'


def transition_toast(previous: Optional[PurchaseStatus], current: Optional[PurchaseStatus],
                     reward: Reward) -> Optional[str]:
    """Celebration message for a purchase status change, if any."""
    trees = format_tree_years(reward)
    if previous is None and current is PurchaseStatus.PENDING_SHIPMENT:
        if trees:
            return (f'Deal! This reuse saves about as much CO2 as {trees} trees '
                    f'absorb in a year.')
        return 'Deal! Reuse saves resources.'
    if previous is not PurchaseStatus.DELIVERED and current is PurchaseStatus.DELIVERED:
        points = f' +{reward.tree_points}pt' if reward.tree_points is not None else ''
        if trees:
            return f'Purchase complete! You saved resources worth about {trees} trees.{points}'
        return f'Purchase complete! You saved resources.{points}'
    return None
