"""Conversation and message routes."""

from flask import Blueprint, current_app, jsonify, request

from storefront.errors import ForbiddenError, NotFoundError, StorefrontError, ValidationError
from storefront.models import Action
from storefront.routes.snapshots import load_item, load_purchase
from storefront.services.purchase_flow import check_action, resolve_role
from storefront.services.threads import build_thread, render_list, thread_to_dicts
from storefront.services.unread import CONVERSATIONS, UnreadTracker
from storefront.utils import (
    current_api,
    current_cache,
    current_dismissed_store,
    current_display_name,
    current_photo_url,
    token_required,
    wants_refresh,
)

conversations_bp = Blueprint('conversations', __name__)


def _tracker():
    return UnreadTracker(current_dismissed_store(), CONVERSATIONS)


def _load_messages(api, conversation_id, uid, refresh=False):
    """Messages as seen by ``uid``; the API decides who may read them."""
    return current_cache().fetch(
        ('messages', conversation_id, uid),
        lambda: api.list_messages(conversation_id),
        refresh=refresh,
    ).value


@conversations_bp.route('/conversations', methods=['GET'])
@token_required
def list_conversations(current_uid):
    """All conversations of the caller plus the reconciled unread badge."""
    try:
        api = current_api()
        lookup = current_cache().fetch(
            ('conversations', current_uid), api.list_conversations, refresh=wants_refresh()
        )
        conversations = lookup.value
        view = _tracker().observe(current_uid, conversations, lookup.fetched)

        return jsonify({
            'conversations': [
                dict(c.to_dict(), other_uid=c.get_other_participant(current_uid))
                for c in conversations
            ],
            'unread': [c.to_dict() for c in view.display_list],
            'unread_count': view.unread_count,
        }), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading conversations failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@conversations_bp.route('/items/<int:item_id>/conversations', methods=['POST'])
@token_required
def start_conversation(current_uid, item_id):
    """Open (or reuse) the conversation between the caller and the seller."""
    try:
        api = current_api()
        cache = current_cache()
        item = load_item(api, cache, item_id)
        purchase = load_purchase(api, cache, item_id, current_uid)
        role = resolve_role(current_uid, item, purchase)
        check_action(Action.MESSAGE, purchase, item, role)

        conversation = api.create_conversation(item_id)
        cache.invalidate(('conversations', current_uid), ('conversations', item.seller_uid))

        return jsonify({'conversation': conversation.to_dict()}), 201
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Starting conversation on item {item_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@conversations_bp.route('/conversations/<int:conversation_id>/read', methods=['POST'])
@token_required
def mark_read(current_uid, conversation_id):
    """Mark a conversation read; the badge drops without waiting for a refetch."""
    try:
        current_api().mark_conversation_read(conversation_id)
        _tracker().dismiss(current_uid, conversation_id)
        return jsonify({'message': 'Conversation marked as read'}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Marking conversation {conversation_id} read failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@conversations_bp.route('/conversations/<int:conversation_id>/messages', methods=['GET'])
@token_required
def get_messages(current_uid, conversation_id):
    """Messages as a reply forest and as flat rows ready to render."""
    try:
        messages = _load_messages(current_api(), conversation_id, current_uid, refresh=wants_refresh())
        forest = build_thread(messages)

        return jsonify({
            'thread': thread_to_dicts(forest),
            'messages': render_list(forest, viewer_uid=current_uid),
            'total': len(messages),
        }), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading messages of conversation {conversation_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@conversations_bp.route('/conversations/<int:conversation_id>/messages', methods=['POST'])
@token_required
def send_message(current_uid, conversation_id):
    """Post a message or a reply.

    Body params:
        - body: message text (required, not blank)
        - parent_message_id: id of the message being replied to (optional)
    """
    try:
        data = request.get_json(silent=True) or {}
        body = (data.get('body') or '').strip()
        parent_id = data.get('parent_message_id')

        if not body:
            raise ValidationError('Message body is required')
        if parent_id is not None and (isinstance(parent_id, bool) or not isinstance(parent_id, int)):
            raise ValidationError('parent_message_id must be an integer')

        api = current_api()
        if parent_id is not None:
            known = {m.id for m in _load_messages(api, conversation_id, current_uid)}
            if parent_id not in known:
                known = {m.id for m in _load_messages(api, conversation_id, current_uid, refresh=True)}
            if parent_id not in known:
                raise ValidationError('The message you are replying to no longer exists')

        api.send_message(
            conversation_id,
            body,
            parent_message_id=parent_id,
            sender_name=current_display_name(),
            sender_icon_url=current_photo_url(),
        )

        conversation = api.get_conversation(conversation_id)
        cache = current_cache()
        cache.invalidate_prefix('messages', conversation_id)
        cache.invalidate(
            ('conversations', conversation.seller_uid),
            ('conversations', conversation.buyer_uid),
        )

        return jsonify({'message': 'Message sent'}), 201
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Sending message to conversation {conversation_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@conversations_bp.route('/conversations/<int:conversation_id>/messages/<int:message_id>', methods=['DELETE'])
@token_required
def delete_message(current_uid, conversation_id, message_id):
    """Delete one of the caller's own messages."""
    try:
        api = current_api()
        messages = _load_messages(api, conversation_id, current_uid, refresh=True)
        target = next((m for m in messages if m.id == message_id), None)
        if target is None:
            raise NotFoundError('Message not found')
        if target.sender_uid != current_uid:
            raise ForbiddenError('You can only delete your own messages')

        api.delete_message(conversation_id, message_id)
        current_cache().invalidate_prefix('messages', conversation_id)

        return jsonify({'message': 'Message deleted'}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Deleting message {message_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500
