"""Item routes: browse, item detail view-model, checkout and Q&A."""

from flask import Blueprint, current_app, jsonify, request

from storefront.constants import categories_as_dicts, category_family, validate_category
from storefront.errors import ApiError, ConflictError, StorefrontError, ValidationError
from storefront.models import Action, Role
from storefront.routes.snapshots import invalidate_purchase_views, load_item, load_purchase
from storefront.services.purchase_flow import (
    badges,
    check_action,
    eligible_actions,
    headline,
    is_sold_for_display,
    paid_summary,
    plan_payment,
    quote,
    resolve_role,
    transition_toast,
)
from storefront.services.rewards import compute_reward
from storefront.utils import current_api, current_cache, token_optional, token_required, wants_refresh

items_bp = Blueprint('items', __name__)
categories_bp = Blueprint('categories', __name__)


def item_summary(item):
    """Card data for the browse grid."""
    data = item.to_dict()
    data['sold'] = item.status.is_sold
    data['reward'] = compute_reward(item.co2_kg).to_dict()
    return data


def _matches(item, keyword):
    return keyword in item.title.lower() or keyword in (item.description or '').lower()


def item_view(item, purchase, viewer_uid):
    """Everything the item page needs to render the purchase panel."""
    role = resolve_role(viewer_uid, item, purchase)
    sold = is_sold_for_display(item, purchase)
    view = {
        'item': item.to_dict(),
        'role': role.value,
        'sold': sold,
        'actions': sorted(action.value for action in eligible_actions(purchase, item, role)),
        'badges': sorted(badge.value for badge in badges(purchase, item, role)),
        'reward': compute_reward(item.co2_kg).to_dict(),
        'headline': headline(role, sold),
        'purchase': purchase.to_dict() if purchase is not None else None,
        'payment': None,
    }
    if purchase is not None and role is Role.BUYER:
        view['payment'] = paid_summary(purchase, item.price)
    return view


@categories_bp.route('', methods=['GET'])
def get_categories():
    """Category tree for the browse menu."""
    return jsonify({'categories': categories_as_dicts()}), 200


@items_bp.route('', methods=['GET'])
@token_optional
def list_items(current_uid):
    """List items.

    Query params:
        - category: category slug; a parent slug also matches its children
        - query: keyword matched against title and description, ignoring case
        - seller_uid: only items listed by this seller
        - refresh: 'true' to bypass the cache
    """
    try:
        category, error = validate_category(request.args.get('category', ''))
        if error:
            raise ValidationError(error)

        api = current_api()
        listing = current_cache().fetch(('items',), api.list_items, refresh=wants_refresh()).value
        items = listing.items
        if category:
            family = category_family(category)
            items = [item for item in items if item.category_slug in family]
        keyword = request.args.get('query', '').strip().lower()
        if keyword:
            items = [item for item in items if _matches(item, keyword)]
        seller_uid = request.args.get('seller_uid', '').strip()
        if seller_uid:
            items = [item for item in items if item.seller_uid == seller_uid]

        return jsonify({
            'items': [item_summary(item) for item in items],
            'total': len(items),
        }), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Listing items failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@items_bp.route('/<int:item_id>', methods=['GET'])
@token_optional
def get_item(current_uid, item_id):
    """Item detail with the viewer's role, actions, badges and reward."""
    try:
        api = current_api()
        cache = current_cache()
        refresh = wants_refresh()
        item = load_item(api, cache, item_id, refresh=refresh)
        purchase = load_purchase(api, cache, item_id, current_uid, refresh=refresh)
        return jsonify(item_view(item, purchase, current_uid)), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading item {item_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@items_bp.route('/<int:item_id>/quote', methods=['GET'])
@token_optional
def quote_item(current_uid, item_id):
    """Preview the payable amount for the points typed into checkout.

    Query params:
        - points: raw points input; blank or non-numeric counts as 0 and
          the value is clamped to the price
    """
    try:
        item = load_item(current_api(), current_cache(), item_id)
        return jsonify(quote(item.price, request.args.get('points', '')).to_dict()), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Quoting item {item_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@items_bp.route('/<int:item_id>/purchase', methods=['POST'])
@token_required
def purchase_item(current_uid, item_id):
    """Buy an item, optionally paying part of the price with tree points.

    Body params:
        - points_used: whole number of points to spend (optional)
    """
    try:
        data = request.get_json(silent=True) or {}
        points_used = data.get('points_used')

        api = current_api()
        cache = current_cache()
        item = load_item(api, cache, item_id)
        purchase = load_purchase(api, cache, item_id, current_uid)
        role = resolve_role(current_uid, item, purchase)
        check_action(Action.PURCHASE, purchase, item, role)

        if points_used is not None:
            # shape check before fetching the balance
            plan_payment(item.price, points_used)
            if points_used > 0:
                balance = api.get_tree_points().balance
                plan_payment(item.price, points_used, balance)

        try:
            created = api.purchase_item(item_id, points_used)
        except ApiError as e:
            if e.status == 409:
                raise ConflictError('This item has already been purchased.') from e
            if e.status == 400 and 'insufficient points' in e.body.lower():
                raise ValidationError(
                    'Insufficient points. Use fewer points or wait for points to be granted.'
                ) from e
            raise

        invalidate_purchase_views(cache, item, current_uid)
        current_app.logger.info(f"Item {item_id} purchased by {current_uid} (purchase {created.id})")

        return jsonify({
            'message': transition_toast(None, created.status, compute_reward(item.co2_kg)),
            'purchase': created.to_dict(),
        }), 201
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Purchasing item {item_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@items_bp.route('/<int:item_id>/ask', methods=['POST'])
@token_required
def ask_item(current_uid, item_id):
    """Ask the AI assistant a question about an item.

    Body params:
        - question: non-empty question text
    """
    try:
        data = request.get_json(silent=True) or {}
        question = (data.get('question') or '').strip()
        if not question:
            raise ValidationError('question is required')

        answer = current_api().ask_item(item_id, question)
        return jsonify({'answer': answer}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Asking about item {item_id} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500
