"""Shared constants for the application."""

from storefront.constants.categories import (
    CATEGORY_TREE,
    VALID_CATEGORIES,
    categories_as_dicts,
    category_family,
    normalize_category,
    validate_category,
)

__all__ = [
    'CATEGORY_TREE',
    'VALID_CATEGORIES',
    'categories_as_dicts',
    'category_family',
    'normalize_category',
    'validate_category',
]
