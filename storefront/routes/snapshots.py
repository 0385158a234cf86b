"""Cache keys and cached loaders shared by the route modules.

Keys:
    ('items',)                      item list
    ('item', item_id)               one item
    ('purchase', item_id, uid)      purchase as seen by uid
    ('conversations', uid)          conversation list of uid
    ('messages', conversation_id, uid)  messages of a conversation as seen by uid
    ('notifications', uid)          notification feed of uid
    ('tree_points', uid), ('revenue', uid)
    ('purchases', uid), ('sales', uid)
"""

from storefront.errors import ApiError, NotFoundError


def load_item(api, cache, item_id, refresh=False):
    def fetch():
        try:
            return api.get_item(item_id)
        except ApiError as e:
            if e.status == 404:
                raise NotFoundError('Item not found') from e
            raise
    return cache.fetch(('item', item_id), fetch, refresh=refresh).value


def load_purchase(api, cache, item_id, uid, refresh=False):
    """Purchase visible to ``uid``; anonymous viewers never see one."""
    if not uid:
        return None
    return cache.fetch(
        ('purchase', item_id, uid),
        lambda: api.get_purchase(item_id),
        refresh=refresh,
    ).value


def invalidate_purchase_views(cache, item, *uids):
    """Forget everything a purchase state change can affect."""
    cache.invalidate(('items',), ('item', item.id))
    cache.invalidate_prefix('purchase', item.id)
    parties = {uid for uid in (item.seller_uid,) + uids if uid}
    for uid in parties:
        cache.invalidate(
            ('conversations', uid),
            ('notifications', uid),
            ('purchases', uid),
            ('sales', uid),
            ('tree_points', uid),
            ('revenue', uid),
        )
