"""Shared authentication utilities.

This module provides Firebase ID token decorators that can be used
across all route files to ensure consistent authentication behavior.
"""

from functools import wraps

from flask import current_app, g, jsonify, request

from storefront.errors import AuthError
from storefront.services.firebase import verify_firebase_token


def _bearer_token():
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        return None
    # Support both "Bearer <token>" and raw token formats
    return auth_header.split(' ')[1] if ' ' in auth_header else auth_header


def _authenticate(token):
    """Resolve a bearer token to caller claims and remember it on ``g``."""
    if current_app.config.get('TESTING'):
        # Testing shortcut: the bearer token is the uid itself
        claims = {'uid': token, 'email': None, 'name': None, 'picture': None}
    else:
        claims = verify_firebase_token(token, current_app.config['FIREBASE_PROJECT_ID'])
    g.id_token = token
    g.refresh_token = request.headers.get('X-Refresh-Token')
    g.current_user = claims
    return claims['uid']


def token_required(f):
    """
    Decorator to require a valid Firebase ID token.

    Extracts the Firebase uid and passes it as the first argument
    to the decorated function.

    Usage:
        @bp.route('/protected')
        @token_required
        def protected_route(current_uid):
            return jsonify({'uid': current_uid})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()

        if not token:
            return jsonify({'error': 'Token is missing', 'code': AuthError.code}), 401

        try:
            current_uid = _authenticate(token)
        except AuthError as e:
            return jsonify(e.to_dict()), e.status

        return f(current_uid, *args, **kwargs)
    return decorated


def token_optional(f):
    """
    Decorator that optionally validates the Firebase ID token.

    If a valid token is provided, extracts the uid. Otherwise, passes None.
    Useful for endpoints that work for both signed-in and anonymous viewers.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        current_uid = None
        g.id_token = None
        g.refresh_token = None
        g.current_user = None

        if token:
            try:
                current_uid = _authenticate(token)
            except AuthError as e:
                current_app.logger.info(f"Ignoring invalid optional token: {e}")

        return f(current_uid, *args, **kwargs)
    return decorated
