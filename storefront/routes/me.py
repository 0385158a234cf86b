"""Account routes: tree points, revenue and public profiles."""

from flask import Blueprint, current_app, jsonify, request

from storefront.errors import StorefrontError, ValidationError
from storefront.utils import current_api, current_cache, token_optional, token_required, wants_refresh

me_bp = Blueprint('me', __name__)
users_bp = Blueprint('users', __name__)


def _positive_int(data, field, label):
    value = data.get(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{label} must be a whole number')
    if value <= 0:
        raise ValidationError(f'{label} must be greater than zero')
    return value


@me_bp.route('/tree-points', methods=['GET'])
@token_required
def get_tree_points(current_uid):
    try:
        api = current_api()
        points = current_cache().fetch(
            ('tree_points', current_uid), api.get_tree_points, refresh=wants_refresh()
        ).value
        return jsonify(points.to_dict()), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading tree points failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@me_bp.route('/tree-points/spend', methods=['POST'])
@token_required
def spend_tree_points(current_uid):
    """Spend tree points outside checkout.

    Body params:
        - points: whole number greater than zero, at most the balance
    """
    try:
        data = request.get_json(silent=True) or {}
        points = _positive_int(data, 'points', 'Points')

        api = current_api()
        cache = current_cache()
        balance = cache.fetch(('tree_points', current_uid), api.get_tree_points).value.balance
        if points > balance:
            raise ValidationError('Insufficient points.')

        updated = api.spend_tree_points(points)
        cache.invalidate(('tree_points', current_uid))
        current_app.logger.info(f"{current_uid} spent {points} tree points")

        return jsonify(updated.to_dict()), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Spending tree points failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@me_bp.route('/revenue', methods=['GET'])
@token_required
def get_revenue(current_uid):
    try:
        api = current_api()
        revenue = current_cache().fetch(
            ('revenue', current_uid), api.get_revenue, refresh=wants_refresh()
        ).value
        return jsonify(revenue.to_dict()), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading revenue failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@me_bp.route('/revenue/withdraw', methods=['POST'])
@token_required
def withdraw_revenue(current_uid):
    """Withdraw sales revenue.

    Body params:
        - amount_cents: whole number greater than zero, at most the revenue
    """
    try:
        data = request.get_json(silent=True) or {}
        amount = _positive_int(data, 'amount_cents', 'Amount')

        api = current_api()
        cache = current_cache()
        available = cache.fetch(('revenue', current_uid), api.get_revenue).value.revenue_cents
        if amount > available:
            raise ValidationError('Amount exceeds available revenue.')

        updated = api.withdraw_revenue(amount)
        cache.invalidate(('revenue', current_uid))
        current_app.logger.info(f"{current_uid} withdrew {amount} cents")

        return jsonify(updated.to_dict()), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Withdrawing revenue failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500


@users_bp.route('/<uid>/public', methods=['GET'])
@token_optional
def get_public_user(current_uid, uid):
    """Public profile of any user; ``user`` is null when there is none."""
    try:
        user = current_api().get_public_user(uid)
        return jsonify({'user': user.to_dict() if user is not None else None}), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.status
    except Exception as e:
        current_app.logger.exception(f"Loading profile {uid} failed: {e}")
        return jsonify({'error': str(e), 'code': 'internal'}), 500
