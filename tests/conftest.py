"""
Pytest configuration and fixtures for testing the storefront.

Routes run against an in-memory stand-in for the marketplace API, so no
network, Firebase or Redis is needed. In testing mode the bearer token is
taken as the caller's uid.
"""

import itertools
import os
import sys
from datetime import datetime, timezone

import pytest
from faker import Faker

# Add the parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from storefront import create_app
from storefront.errors import ApiError
from storefront.models import (
    Conversation,
    Item,
    ItemList,
    ItemStatus,
    Message,
    Notification,
    NotificationFeed,
    PublicUser,
    Purchase,
    PurchaseStatus,
    PurchaseWithItem,
    Revenue,
    TreePoints,
)

fake = Faker()

_ids = itertools.count(1)


def _now():
    return datetime.now(timezone.utc)


def build_item(**overrides):
    data = {
        'id': next(_ids),
        'title': fake.sentence(nb_words=3),
        'description': fake.paragraph(),
        'price': fake.random_int(min=300, max=20000),
        'status': ItemStatus.LISTED,
        'category_slug': 'books-magazines-comics',
        'seller_uid': fake.uuid4(),
        'co2_kg': 12.0,
        'created_at': _now(),
        'updated_at': _now(),
    }
    data.update(overrides)
    return Item(**data)


def build_purchase(item, buyer_uid, **overrides):
    data = {
        'id': next(_ids),
        'item_id': item.id,
        'buyer_uid': buyer_uid,
        'seller_uid': item.seller_uid,
        'conversation_id': next(_ids),
        'status': PurchaseStatus.PENDING_SHIPMENT,
        'created_at': _now(),
        'updated_at': _now(),
    }
    data.update(overrides)
    return Purchase(**data)


def build_message(conversation_id, sender_uid, **overrides):
    data = {
        'id': next(_ids),
        'conversation_id': conversation_id,
        'sender_uid': sender_uid,
        'sender_name': fake.first_name(),
        'body': fake.sentence(),
        'created_at': _now(),
    }
    data.update(overrides)
    return Message(**data)


def build_notification(**overrides):
    data = {
        'id': next(_ids),
        'type': 'purchase',
        'title': fake.sentence(nb_words=4),
        'read': False,
        'created_at': _now(),
    }
    data.update(overrides)
    return Notification(**data)


class FakeMarketplace:
    """In-memory marketplace API. ``client`` matches MarketplaceApi's constructor."""

    def __init__(self):
        self.items = {}
        self.purchases = {}
        self.conversations = {}
        self.messages = {}
        self.notifications = {}
        self.tree_points = {}
        self.revenue = {}
        self.users = {}
        self.answers = {}
        self.calls = []

    def client(self, base_url=None, token_provider=None, timeout=None):
        uid = token_provider.id_token if token_provider is not None else None
        return FakeApi(self, uid)

    def add_item(self, **overrides):
        item = build_item(**overrides)
        self.items[item.id] = item
        return item

    def add_purchase(self, item, buyer_uid, **overrides):
        purchase = build_purchase(item, buyer_uid, **overrides)
        self.purchases[item.id] = purchase
        if purchase.is_active:
            self.set_item_status(item.id, ItemStatus.IN_TRANSACTION)
        return purchase

    def add_conversation(self, item, buyer_uid, **overrides):
        data = {
            'conversation_id': next(_ids),
            'item_id': item.id,
            'seller_uid': item.seller_uid,
            'buyer_uid': buyer_uid,
        }
        data.update(overrides)
        conversation = Conversation(**data)
        self.conversations[conversation.conversation_id] = conversation
        self.messages.setdefault(conversation.conversation_id, [])
        return conversation

    def add_message(self, conversation_id, sender_uid, **overrides):
        message = build_message(conversation_id, sender_uid, **overrides)
        self.messages.setdefault(conversation_id, []).append(message)
        return message

    def add_notification(self, uid, **overrides):
        notification = build_notification(**overrides)
        self.notifications.setdefault(uid, []).append(notification)
        return notification

    def set_item_status(self, item_id, status):
        self.items[item_id] = self.items[item_id].model_copy(update={'status': status})

    def set_purchase_status(self, item_id, status):
        self.purchases[item_id] = self.purchases[item_id].model_copy(update={'status': status})

    def set_conversation_unread(self, conversation_id, has_unread):
        self.conversations[conversation_id] = self.conversations[conversation_id].model_copy(
            update={'has_unread': has_unread}
        )


class FakeApi:

    def __init__(self, market, uid):
        self.market = market
        self.uid = uid

    def _record(self, name, *args):
        self.market.calls.append((name,) + args)

    def _require_user(self):
        if not self.uid:
            raise ApiError(401, 'unauthorized')

    # items

    def list_items(self):
        self._record('list_items')
        items = list(self.market.items.values())
        return ItemList(items=items, total=len(items))

    def get_item(self, item_id):
        self._record('get_item', item_id)
        if item_id not in self.market.items:
            raise ApiError(404, 'not found')
        return self.market.items[item_id]

    def ask_item(self, item_id, question):
        self._record('ask_item', item_id, question)
        return self.market.answers.get(item_id, 'No answer yet.')

    # purchases

    def get_purchase(self, item_id):
        self._record('get_purchase', item_id)
        purchase = self.market.purchases.get(item_id)
        if purchase is None or self.uid not in (purchase.buyer_uid, purchase.seller_uid):
            return None
        return purchase

    def purchase_item(self, item_id, points_used=None):
        self._require_user()
        self._record('purchase_item', item_id, points_used)
        existing = self.market.purchases.get(item_id)
        if existing is not None and existing.is_active:
            raise ApiError(409, 'already purchased')
        if points_used and points_used > self.market.tree_points.get(self.uid, TreePoints()).balance:
            raise ApiError(400, 'Insufficient points')
        item = self.market.items[item_id]
        purchase = self.market.add_purchase(
            item, self.uid, points_used=points_used or 0, paid_yen=item.price - (points_used or 0)
        )
        return purchase

    def _transition(self, name, purchase_id, status):
        self._record(name, purchase_id)
        for item_id, purchase in self.market.purchases.items():
            if purchase.id == purchase_id:
                self.market.set_purchase_status(item_id, status)
                if status is PurchaseStatus.CANCELED:
                    self.market.set_item_status(item_id, ItemStatus.LISTED)
                elif status is PurchaseStatus.DELIVERED:
                    self.market.set_item_status(item_id, ItemStatus.SOLD)
                return self.market.purchases[item_id]
        raise ApiError(404, 'not found')

    def mark_shipped(self, purchase_id):
        return self._transition('mark_shipped', purchase_id, PurchaseStatus.SHIPPED)

    def mark_delivered(self, purchase_id):
        return self._transition('mark_delivered', purchase_id, PurchaseStatus.DELIVERED)

    def cancel_purchase(self, purchase_id):
        return self._transition('cancel_purchase', purchase_id, PurchaseStatus.CANCELED)

    def my_purchases(self):
        self._record('my_purchases')
        return [
            PurchaseWithItem(purchase=p, item=self.market.items[p.item_id])
            for p in self.market.purchases.values() if p.buyer_uid == self.uid
        ]

    def my_sales(self):
        self._record('my_sales')
        return [
            PurchaseWithItem(purchase=p, item=self.market.items[p.item_id])
            for p in self.market.purchases.values() if p.seller_uid == self.uid
        ]

    # conversations

    def create_conversation(self, item_id):
        self._record('create_conversation', item_id)
        for conversation in self.market.conversations.values():
            if conversation.item_id == item_id and conversation.buyer_uid == self.uid:
                return conversation
        return self.market.add_conversation(self.market.items[item_id], self.uid)

    def list_conversations(self):
        self._record('list_conversations')
        return [
            c for c in self.market.conversations.values()
            if self.uid in (c.seller_uid, c.buyer_uid)
        ]

    def get_conversation(self, conversation_id):
        return self.market.conversations[conversation_id]

    def mark_conversation_read(self, conversation_id):
        self._record('mark_conversation_read', conversation_id)
        self.market.set_conversation_unread(conversation_id, False)

    def list_messages(self, conversation_id):
        self._record('list_messages', conversation_id)
        conversation = self.market.conversations.get(conversation_id)
        if conversation is not None and self.uid not in (conversation.seller_uid, conversation.buyer_uid):
            raise ApiError(403, 'not a participant')
        return list(self.market.messages.get(conversation_id, []))

    def send_message(self, conversation_id, body, parent_message_id=None,
                     sender_name=None, sender_icon_url=None):
        self._record('send_message', conversation_id, body, parent_message_id)
        self.market.add_message(
            conversation_id,
            self.uid,
            body=body,
            parent_message_id=parent_message_id,
            sender_name=sender_name,
            sender_icon_url=sender_icon_url,
        )

    def delete_message(self, conversation_id, message_id):
        self._record('delete_message', conversation_id, message_id)
        self.market.messages[conversation_id] = [
            m for m in self.market.messages[conversation_id] if m.id != message_id
        ]

    # notifications

    def list_notifications(self, unread_only=None, limit=None):
        self._record('list_notifications')
        notifications = self.market.notifications.get(self.uid, [])
        unread = sum(1 for n in notifications if not n.read)
        return NotificationFeed(notifications=notifications, unread_count=unread)

    def mark_all_notifications_read(self):
        self._record('mark_all_notifications_read')
        self.market.notifications[self.uid] = [
            n.model_copy(update={'read': True}) for n in self.market.notifications.get(self.uid, [])
        ]

    # account

    def get_tree_points(self):
        self._record('get_tree_points')
        return self.market.tree_points.get(self.uid, TreePoints())

    def spend_tree_points(self, points):
        self._record('spend_tree_points', points)
        current = self.get_tree_points()
        updated = TreePoints(total=current.total, balance=current.balance - points)
        self.market.tree_points[self.uid] = updated
        return updated

    def get_revenue(self):
        self._record('get_revenue')
        return self.market.revenue.get(self.uid, Revenue())

    def withdraw_revenue(self, amount_cents):
        self._record('withdraw_revenue', amount_cents)
        updated = Revenue(revenue_cents=self.get_revenue().revenue_cents - amount_cents)
        self.market.revenue[self.uid] = updated
        return updated

    def get_public_user(self, uid):
        return self.market.users.get(uid)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')
    yield app


@pytest.fixture(scope='function')
def marketplace(app):
    """Fresh in-memory marketplace plus empty cache and dismissed state."""
    market = FakeMarketplace()
    app.config['API_CLIENT_FACTORY'] = market.client
    app.extensions['storefront_cache'].clear()
    store = app.extensions['storefront_dismissed']
    with store._lock:
        store._local.clear()
    return market


@pytest.fixture(scope='function')
def client(app, marketplace):
    """Create test client for each test function."""
    return app.test_client()


def _headers(uid):
    return {'Authorization': f'Bearer {uid}'}


@pytest.fixture
def seller_uid():
    return 'seller-' + fake.pystr(min_chars=6, max_chars=8)


@pytest.fixture
def buyer_uid():
    return 'buyer-' + fake.pystr(min_chars=6, max_chars=8)


@pytest.fixture
def stranger_uid():
    return 'stranger-' + fake.pystr(min_chars=6, max_chars=8)


@pytest.fixture
def seller_headers(seller_uid):
    return _headers(seller_uid)


@pytest.fixture
def buyer_headers(buyer_uid):
    return _headers(buyer_uid)


@pytest.fixture
def stranger_headers(stranger_uid):
    return _headers(stranger_uid)


@pytest.fixture
def test_item(marketplace, seller_uid):
    """A listed item with a known price and CO2 estimate."""
    return marketplace.add_item(seller_uid=seller_uid, price=1000, co2_kg=50)


@pytest.fixture
def user_factory():
    def make(**overrides):
        data = {'uid': fake.uuid4(), 'display_name': fake.name()}
        data.update(overrides)
        return PublicUser(**data)
    return make


@pytest.fixture
def make_item():
    return build_item


@pytest.fixture
def make_purchase():
    return build_purchase


@pytest.fixture
def make_message():
    return build_message


@pytest.fixture
def make_notification():
    return build_notification
