"""Category constants for listing browse and filters.

Must stay in sync with the category slugs the marketplace API stores on
items (``categorySlug``).
"""

# (slug, label, child slugs). The empty slug is the "all" filter and never
# appears on an item.
CATEGORY_TREE = [
    ('fashion', 'Fashion', [
        ('fashion-men', 'Men'),
        ('fashion-women', 'Women'),
    ]),
    ('baby-kids', 'Baby & Kids', []),
    ('gaming-goods', 'Games, Toys & Goods', []),
    ('art-crafts', 'Hobbies, Instruments & Art', []),
    ('tickets', 'Tickets', []),
    ('books-magazines-comics', 'Books, Magazines & Comics', []),
    ('cd-dvd-bluray', 'CD, DVD & Blu-ray', []),
    ('phones-tablets-pcs', 'Phones, Tablets & PCs', []),
    ('tv-audio-camera', 'TV, Audio & Cameras', []),
    ('home-appliances', 'Home Appliances', []),
    ('sports', 'Sports', []),
    ('outdoor-travel', 'Outdoor, Fishing & Travel', []),
    ('beauty-cosmetics', 'Beauty & Cosmetics', []),
    ('health-fitness', 'Diet & Health', []),
    ('food-drink', 'Food & Drink', []),
    ('kitchen-daily', 'Kitchen & Daily Goods', []),
    ('home-interior', 'Furniture & Interior', []),
    ('pets', 'Pet Supplies', []),
    ('diy-tools', 'DIY & Tools', []),
    ('flower-gardening', 'Flowers & Gardening', []),
    ('handmade-craft', 'Handmade & Crafts', []),
    ('automotive', 'Cars, Bikes & Bicycles', []),
]

VALID_CATEGORIES = {
    slug
    for parent, _, children in CATEGORY_TREE
    for slug in [parent] + [child for child, _ in children]
}


def normalize_category(category: str) -> str:
    """Lowercase and strip a category slug. The empty string means "all"."""
    return (category or '').lower().strip()


def category_family(category: str) -> set[str]:
    """Return the slugs an item may carry to match a category filter.

    A parent category matches itself and all of its children; a child
    matches only itself. Unknown slugs match nothing.
    """
    key = normalize_category(category)
    for parent, _, children in CATEGORY_TREE:
        if key == parent:
            return {parent} | {child for child, _ in children}
        if key in {child for child, _ in children}:
            return {key}
    return set()


def validate_category(category: str) -> tuple[str, str | None]:
    """Validate and normalize a category filter.

    Returns:
        (normalized_key, error_message)
        error_message is None when valid.
    """
    normalized = normalize_category(category)
    if normalized and normalized not in VALID_CATEGORIES:
        return normalized, (
            f"Invalid category '{category}'. "
            f"Valid categories: {', '.join(sorted(VALID_CATEGORIES))}"
        )
    return normalized, None


def categories_as_dicts() -> list[dict]:
    """Serialize the category tree for the browse menu."""
    return [
        {
            'slug': parent,
            'label': label,
            'children': [{'slug': child, 'label': child_label} for child, child_label in children],
        }
        for parent, label, children in CATEGORY_TREE
    ]
