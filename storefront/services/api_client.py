"""HTTP client for the marketplace REST API.

The API is the source of truth for items, purchases, conversations,
notifications and point balances. Calls carry the viewer's Firebase ID
token; a 401 forces one token refresh and a single retry. Transport errors
on GET are retried with backoff before surfacing as NetworkError; POST and
DELETE are sent once because the server may already have applied them.
"""

import logging

import requests
from requests import RequestException
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront.errors import ApiError, AuthError, NetworkError
from storefront.models import (
    Conversation,
    Item,
    ItemList,
    Message,
    NotificationFeed,
    PublicUser,
    Purchase,
    PurchaseWithItem,
    Revenue,
    TreePoints,
    parse,
    parse_list,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'http://localhost:8080/api'


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(RequestException),
    )


class MarketplaceApi:
    """Thin typed wrapper around the marketplace endpoints."""

    def __init__(self, base_url=None, token_provider=None, timeout=10, session=None):
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip('/')
        self.token_provider = token_provider
        self.timeout = timeout
        self.session = session or requests.Session()

    # ============ TRANSPORT ============

    def _send(self, method, url, headers, json=None, params=None):
        logger.info(f"MarketplaceApi {method} {url}")
        return self.session.request(
            method,
            url,
            headers=headers,
            json=json,
            params=params,
            timeout=self.timeout,
        )

    _send_with_retry = http_retry()(_send)

    def request(self, method, path, json=None, params=None):
        url = f"{self.base_url}{path}"
        headers = {'Content-Type': 'application/json'}
        token = self.token_provider.get_token() if self.token_provider else None
        if token:
            headers['Authorization'] = f'Bearer {token}'

        send = self._send_with_retry if method == 'GET' else self._send

        try:
            resp = send(method, url, headers, json=json, params=params)

            if resp.status_code == 401 and self.token_provider and self.token_provider.can_refresh:
                logger.warning(f"401 from {method} {path}, refreshing ID token once")
                try:
                    fresh = self.token_provider.get_token(force_refresh=True)
                except AuthError as e:
                    logger.warning(f"Token refresh failed: {e}")
                else:
                    headers['Authorization'] = f'Bearer {fresh}'
                    resp = send(method, url, headers, json=json, params=params)
        except RequestException as e:
            logger.error(f"MarketplaceApi {method} {path} failed: {e}")
            raise NetworkError() from e

        if not resp.ok:
            raise ApiError(resp.status_code, resp.text or resp.reason)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(resp.status_code, 'Response was not JSON') from e

    def get(self, path, params=None):
        return self.request('GET', path, params=params)

    def post(self, path, body=None):
        return self.request('POST', path, json=body)

    def delete(self, path):
        return self.request('DELETE', path)

    # ============ ITEMS ============

    def list_items(self):
        return parse(ItemList, self.get('/items'))

    def get_item(self, item_id):
        return parse(Item, self.get(f'/items/{item_id}'))

    def ask_item(self, item_id, question):
        data = self.post(f'/items/{item_id}/ask', {'question': question}) or {}
        return data.get('answer', '')

    # ============ PURCHASES ============

    def get_purchase(self, item_id):
        """Purchase for an item, or None when there is none the viewer may see."""
        try:
            data = self.get(f'/items/{item_id}/purchase')
        except ApiError as e:
            if e.is_not_found:
                return None
            raise
        if data is None:
            return None
        return parse(Purchase, data)

    def purchase_item(self, item_id, points_used=None):
        body = {'pointsUsed': points_used} if points_used is not None else None
        return parse(Purchase, self.post(f'/items/{item_id}/purchase', body))

    def mark_shipped(self, purchase_id):
        return parse(Purchase, self.post(f'/purchases/{purchase_id}/ship'))

    def mark_delivered(self, purchase_id):
        return parse(Purchase, self.post(f'/purchases/{purchase_id}/receive'))

    def cancel_purchase(self, purchase_id):
        return parse(Purchase, self.post(f'/purchases/{purchase_id}/cancel'))

    def my_purchases(self):
        return parse_list(PurchaseWithItem, self.get('/me/purchases'))

    def my_sales(self):
        return parse_list(PurchaseWithItem, self.get('/me/sales'))

    # ============ CONVERSATIONS ============

    def create_conversation(self, item_id):
        return parse(Conversation, self.post(f'/items/{item_id}/conversations'))

    def list_conversations(self):
        return parse_list(Conversation, self.get('/conversations'))

    def get_conversation(self, conversation_id):
        return parse(Conversation, self.get(f'/conversations/{conversation_id}'))

    def mark_conversation_read(self, conversation_id):
        return self.post(f'/conversations/{conversation_id}/read')

    def list_messages(self, conversation_id):
        return parse_list(Message, self.get(f'/conversations/{conversation_id}/messages'))

    def send_message(self, conversation_id, body, parent_message_id=None,
                     sender_name=None, sender_icon_url=None):
        payload = {
            'body': body,
            'senderName': sender_name,
            'senderIconUrl': sender_icon_url,
        }
        if parent_message_id is not None:
            payload['parentMessageId'] = parent_message_id
        return self.post(f'/conversations/{conversation_id}/messages', payload)

    def delete_message(self, conversation_id, message_id):
        return self.delete(f'/conversations/{conversation_id}/messages/{message_id}')

    # ============ NOTIFICATIONS ============

    def list_notifications(self, unread_only=None, limit=None):
        params = {}
        if unread_only is False:
            params['unread_only'] = 'false'
        if limit:
            params['limit'] = str(limit)
        return parse(NotificationFeed, self.get('/me/notifications', params=params or None))

    def mark_all_notifications_read(self):
        return self.post('/me/notifications/read-all')

    # ============ ACCOUNT ============

    def get_tree_points(self):
        return parse(TreePoints, self.get('/me/tree-points'))

    def spend_tree_points(self, points):
        return parse(TreePoints, self.post('/me/tree-points/spend', {'points': points}))

    def get_revenue(self):
        return parse(Revenue, self.get('/me/revenue'))

    def withdraw_revenue(self, amount_cents):
        return parse(Revenue, self.post('/me/revenue/withdraw', {'amountCents': amount_cents}))

    def get_public_user(self, uid):
        """Public profile, or None when the user does not exist."""
        try:
            data = self.get(f'/users/{uid}/public')
        except ApiError as e:
            if e.status == 404:
                return None
            raise
        return parse(PublicUser, data)
