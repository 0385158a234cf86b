"""
Notification routes - the caller's feed and the unread badge.
"""

from flask import Blueprint, current_app, jsonify

from storefront.errors import StorefrontError
from storefront.services.unread import NOTIFICATIONS, UnreadTracker
from storefront.utils import current_api, current_cache, current_dismissed_store, token_required, wants_refresh

notifications_bp = Blueprint('notifications', __name__)


def _tracker():
    return UnreadTracker(current_dismissed_store(), NOTIFICATIONS)


def _load_feed(current_uid, refresh=False):
    api = current_api()
    return current_cache().fetch(
        ('notifications', current_uid),
        lambda: api.list_notifications(unread_only=False),
        refresh=refresh,
    )


@notifications_bp.route('', methods=['GET'])
@token_required
def get_notifications(current_uid):
    """
    Get notifications for the current user.

    Response:
        - notifications: full feed, newest first
        - unread: unread entries not yet dismissed in this session
        - unread_count: badge number
    """
    try:
        lookup = _load_feed(current_uid, refresh=wants_refresh())
        feed = lookup.value
        view = _tracker().observe(current_uid, feed.notifications, lookup.fetched)

        return jsonify({
            'notifications': [n.to_dict() for n in feed.notifications],
            'unread': [n.to_dict() for n in view.display_list],
            'unread_count': view.unread_count,
        }), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Error getting notifications: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@notifications_bp.route('/read-all', methods=['POST'])
@token_required
def mark_all_as_read(current_uid):
    """Mark every notification read and hide the ones currently displayed."""
    try:
        feed = _load_feed(current_uid).value
        tracker = _tracker()
        displayed = tracker.observe(current_uid, feed.notifications, False).display_list

        current_api().mark_all_notifications_read()
        tracker.dismiss(current_uid, *[n.unread_key for n in displayed])

        return jsonify({
            'message': 'All notifications marked as read',
            'dismissed': len(displayed),
        }), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Error marking all notifications as read: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500
