"""Per-request access to the marketplace client, cache and unread state."""

from flask import current_app, g, request

from storefront.services.firebase import TokenProvider


def current_api():
    """Marketplace API client acting for the current caller."""
    provider = TokenProvider(
        id_token=g.get('id_token'),
        refresh_token=g.get('refresh_token'),
        api_key=current_app.config.get('FIREBASE_API_KEY'),
    )
    factory = current_app.config['API_CLIENT_FACTORY']
    return factory(
        base_url=current_app.config['MARKETPLACE_API_URL'],
        token_provider=provider,
        timeout=current_app.config['API_TIMEOUT'],
    )


def current_cache():
    return current_app.extensions['storefront_cache']


def current_dismissed_store():
    return current_app.extensions['storefront_dismissed']


def wants_refresh():
    """True when the caller asked for an authoritative refetch."""
    return request.args.get('refresh', 'false').lower() in ('true', '1', 'yes')


def current_display_name(fallback=None):
    claims = g.get('current_user') or {}
    return claims.get('name') or fallback


def current_photo_url():
    claims = g.get('current_user') or {}
    return claims.get('picture')
