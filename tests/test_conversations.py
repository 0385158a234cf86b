"""
Tests for conversation and message endpoints.
"""

import pytest


@pytest.fixture
def conversation(marketplace, test_item, buyer_uid):
    return marketplace.add_conversation(test_item, buyer_uid)


class TestListConversations:
    """Tests for GET /api/conversations"""

    def test_list_with_unread_badge(self, client, marketplace, conversation, buyer_headers):
        marketplace.set_conversation_unread(conversation.conversation_id, True)

        response = client.get('/api/conversations', headers=buyer_headers)

        assert response.status_code == 200
        assert len(response.json['conversations']) == 1
        assert response.json['unread_count'] == 1
        assert response.json['conversations'][0]['other_uid'] == conversation.seller_uid

    def test_mark_read_hides_until_refetch(self, client, marketplace, conversation, buyer_headers):
        cid = conversation.conversation_id
        marketplace.set_conversation_unread(cid, True)
        client.get('/api/conversations', headers=buyer_headers)

        response = client.post(f'/api/conversations/{cid}/read', headers=buyer_headers)
        assert response.status_code == 200

        # cached list still says unread, the local dismissal hides it
        assert client.get('/api/conversations', headers=buyer_headers).json['unread_count'] == 0

        # a new message arrives and the authoritative list reports it unread again
        marketplace.set_conversation_unread(cid, True)
        refreshed = client.get('/api/conversations?refresh=true', headers=buyer_headers).json
        assert refreshed['unread_count'] == 1
        assert refreshed['unread'][0]['conversation_id'] == cid

    def test_requires_auth(self, client):
        assert client.get('/api/conversations').status_code == 401


class TestStartConversation:

    def test_third_party_starts_conversation(self, client, marketplace, test_item, stranger_headers):
        response = client.post(f'/api/items/{test_item.id}/conversations', headers=stranger_headers)

        assert response.status_code == 201
        assert response.json['conversation']['item_id'] == test_item.id

    def test_seller_cannot_message_own_listing(self, client, test_item, seller_headers):
        response = client.post(f'/api/items/{test_item.id}/conversations', headers=seller_headers)

        assert response.status_code == 409

    def test_sold_item_is_read_only_for_third_party(self, client, marketplace, test_item,
                                                    buyer_uid, stranger_headers):
        marketplace.add_purchase(test_item, buyer_uid)

        response = client.post(f'/api/items/{test_item.id}/conversations', headers=stranger_headers)

        assert response.status_code == 409


class TestMessages:
    """Tests for /api/conversations/:id/messages"""

    def test_thread_view(self, client, marketplace, conversation, seller_uid, buyer_uid, buyer_headers):
        cid = conversation.conversation_id
        root = marketplace.add_message(cid, buyer_uid)
        reply = marketplace.add_message(cid, seller_uid, parent_message_id=root.id)
        orphan = marketplace.add_message(cid, buyer_uid, parent_message_id=424242)

        response = client.get(f'/api/conversations/{cid}/messages', headers=buyer_headers)

        assert response.status_code == 200
        data = response.json
        assert data['total'] == 3
        assert [m['id'] for m in data['thread']] == [root.id, orphan.id]
        assert data['thread'][0]['replies'][0]['id'] == reply.id
        assert [(m['id'], m['depth']) for m in data['messages']] == [
            (root.id, 0), (reply.id, 1), (orphan.id, 0),
        ]
        assert data['messages'][0]['can_delete'] is True
        assert data['messages'][1]['can_delete'] is False

    def test_stranger_cannot_read_cached_thread(self, client, marketplace, conversation,
                                                buyer_uid, buyer_headers, stranger_headers):
        cid = conversation.conversation_id
        marketplace.add_message(cid, buyer_uid, body='my address is 1 Secret St')

        assert client.get(f'/api/conversations/{cid}/messages', headers=buyer_headers).status_code == 200
        response = client.get(f'/api/conversations/{cid}/messages', headers=stranger_headers)

        assert response.status_code == 403
        assert 'messages' not in response.json

    def test_stranger_cannot_reply_into_cached_thread(self, client, marketplace, conversation,
                                                      buyer_uid, buyer_headers, stranger_headers):
        cid = conversation.conversation_id
        root = marketplace.add_message(cid, buyer_uid)
        client.get(f'/api/conversations/{cid}/messages', headers=buyer_headers)

        response = client.post(f'/api/conversations/{cid}/messages', headers=stranger_headers,
                               json={'body': 'Hi', 'parent_message_id': root.id})

        assert response.status_code == 403
        assert not any(call[0] == 'send_message' for call in marketplace.calls)

    def test_send_refreshes_other_participant_view(self, client, marketplace, conversation,
                                                   buyer_headers, seller_headers):
        cid = conversation.conversation_id
        client.get(f'/api/conversations/{cid}/messages', headers=seller_headers)

        client.post(f'/api/conversations/{cid}/messages', headers=buyer_headers, json={'body': 'Hello'})

        data = client.get(f'/api/conversations/{cid}/messages', headers=seller_headers).json
        assert [m['body'] for m in data['messages']] == ['Hello']

    def test_send_message(self, client, marketplace, conversation, buyer_headers):
        cid = conversation.conversation_id
        client.get(f'/api/conversations/{cid}/messages', headers=buyer_headers)

        response = client.post(f'/api/conversations/{cid}/messages', headers=buyer_headers,
                               json={'body': 'Is this still available?'})

        assert response.status_code == 201
        data = client.get(f'/api/conversations/{cid}/messages', headers=buyer_headers).json
        assert [m['body'] for m in data['messages']] == ['Is this still available?']

    def test_reply(self, client, marketplace, conversation, seller_uid, buyer_headers):
        cid = conversation.conversation_id
        root = marketplace.add_message(cid, seller_uid)

        response = client.post(f'/api/conversations/{cid}/messages', headers=buyer_headers,
                               json={'body': 'Thanks', 'parent_message_id': root.id})

        assert response.status_code == 201
        assert ('send_message', cid, 'Thanks', root.id) in marketplace.calls

    def test_reply_to_missing_parent(self, client, marketplace, conversation, buyer_headers):
        response = client.post(f'/api/conversations/{conversation.conversation_id}/messages',
                               headers=buyer_headers, json={'body': 'Hi', 'parent_message_id': 999999})

        assert response.status_code == 400
        assert not any(call[0] == 'send_message' for call in marketplace.calls)

    def test_blank_body(self, client, marketplace, conversation, buyer_headers):
        response = client.post(f'/api/conversations/{conversation.conversation_id}/messages',
                               headers=buyer_headers, json={'body': '   '})

        assert response.status_code == 400
        assert marketplace.calls == []

    def test_delete_own_message(self, client, marketplace, conversation, buyer_uid, buyer_headers):
        cid = conversation.conversation_id
        message = marketplace.add_message(cid, buyer_uid)

        response = client.delete(f'/api/conversations/{cid}/messages/{message.id}', headers=buyer_headers)

        assert response.status_code == 200
        assert marketplace.messages[cid] == []

    def test_cannot_delete_others_message(self, client, marketplace, conversation, seller_uid, buyer_headers):
        cid = conversation.conversation_id
        message = marketplace.add_message(cid, seller_uid)

        response = client.delete(f'/api/conversations/{cid}/messages/{message.id}', headers=buyer_headers)

        assert response.status_code == 403
        assert marketplace.messages[cid] == [message]

    def test_delete_missing_message(self, client, conversation, buyer_headers):
        response = client.delete(
            f'/api/conversations/{conversation.conversation_id}/messages/999999', headers=buyer_headers
        )

        assert response.status_code == 404
