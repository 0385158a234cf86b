"""Shared utilities for the storefront routes.

This package contains reusable utilities that are shared across
multiple route files to reduce code duplication.
"""

from storefront.utils.auth import token_optional, token_required
from storefront.utils.context import (
    current_api,
    current_cache,
    current_dismissed_store,
    current_display_name,
    current_photo_url,
    wants_refresh,
)

__all__ = [
    'token_required',
    'token_optional',
    'current_api',
    'current_cache',
    'current_dismissed_store',
    'current_display_name',
    'current_photo_url',
    'wants_refresh',
]
