"""Purchase routes: shipping, receipt, cancellation and the viewer's history."""

from flask import Blueprint, current_app, jsonify, request

from storefront.errors import NotFoundError, StorefrontError, ValidationError
from storefront.models import Action
from storefront.models.lifecycle import next_status
from storefront.routes.snapshots import invalidate_purchase_views, load_item, load_purchase
from storefront.services.purchase_flow import check_action, resolve_role, transition_toast
from storefront.services.rewards import compute_reward
from storefront.utils import current_api, current_cache, token_required, wants_refresh

purchases_bp = Blueprint('purchases', __name__)

# action -> MarketplaceApi method name
TRANSITION_CALLS = {
    Action.SHIP: 'mark_shipped',
    Action.CONFIRM_RECEIPT: 'mark_delivered',
    Action.CANCEL: 'cancel_purchase',
}


def _run_transition(current_uid, purchase_id, action):
    data = request.get_json(silent=True) or {}
    item_id = data.get('item_id')
    if isinstance(item_id, bool) or not isinstance(item_id, int):
        raise ValidationError('item_id is required')

    api = current_api()
    cache = current_cache()
    item = load_item(api, cache, item_id)
    # guard against the freshest snapshot, not a cached one
    purchase = load_purchase(api, cache, item_id, current_uid, refresh=True)
    if purchase is None or purchase.id != purchase_id:
        raise NotFoundError('Purchase not found')

    role = resolve_role(current_uid, item, purchase)
    check_action(action, purchase, item, role)

    updated = getattr(api, TRANSITION_CALLS[action])(purchase_id)
    expected = next_status(purchase.status, action)
    if updated.status is not expected:
        current_app.logger.warning(
            f"Purchase {purchase_id} {action.value} returned {updated.status.value}, "
            f"expected {expected.value}"
        )

    invalidate_purchase_views(cache, item, current_uid, purchase.buyer_uid, purchase.seller_uid)
    cache.invalidate_prefix('messages', purchase.conversation_id)
    current_app.logger.info(
        f"Purchase {purchase_id} {action.value} by {current_uid}: "
        f"{purchase.status.value} -> {updated.status.value}"
    )

    return jsonify({
        'message': transition_toast(purchase.status, updated.status, compute_reward(item.co2_kg)),
        'purchase': updated.to_dict(),
    }), 200


@purchases_bp.route('/purchases/<int:purchase_id>/ship', methods=['POST'])
@token_required
def ship_purchase(current_uid, purchase_id):
    """Seller marks the item as shipped.

    Body params:
        - item_id: the purchased item
    """
    try:
        return _run_transition(current_uid, purchase_id, Action.SHIP)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Shipping purchase {purchase_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@purchases_bp.route('/purchases/<int:purchase_id>/receive', methods=['POST'])
@token_required
def receive_purchase(current_uid, purchase_id):
    """Buyer confirms receipt, completing the purchase."""
    try:
        return _run_transition(current_uid, purchase_id, Action.CONFIRM_RECEIPT)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Confirming receipt of purchase {purchase_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@purchases_bp.route('/purchases/<int:purchase_id>/cancel', methods=['POST'])
@token_required
def cancel_purchase(current_uid, purchase_id):
    """Buyer cancels before shipment."""
    try:
        return _run_transition(current_uid, purchase_id, Action.CANCEL)
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Canceling purchase {purchase_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@purchases_bp.route('/me/purchases', methods=['GET'])
@token_required
def my_purchases(current_uid):
    """Purchases the caller made, newest first as the API returns them."""
    try:
        api = current_api()
        rows = current_cache().fetch(
            ('purchases', current_uid), api.my_purchases, refresh=wants_refresh()
        ).value
        return jsonify({'purchases': [row.to_dict() for row in rows], 'total': len(rows)}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading purchases failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@purchases_bp.route('/me/sales', methods=['GET'])
@token_required
def my_sales(current_uid):
    """Purchases of items the caller is selling."""
    try:
        api = current_api()
        rows = current_cache().fetch(
            ('sales', current_uid), api.my_sales, refresh=wants_refresh()
        ).value
        return jsonify({'sales': [row.to_dict() for row in rows], 'total': len(rows)}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading sales failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500
