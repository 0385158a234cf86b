"""Unread badge reconciliation for conversations and notifications.

The server reports an unread flag per entry. Marking an entry read in this
session dismisses it locally so the badge drops at once; the dismissal lasts
until the next authoritative fetch replaces the list, after which the
server's flags are trusted again (a conversation with a new message comes
back as unread).
"""

from dataclasses import dataclass

CONVERSATIONS = 'conversations'
NOTIFICATIONS = 'notifications'


@dataclass(frozen=True)
class UnreadView:
    display_list: list
    unread_count: int


def _key(value):
    return str(value)


def reconcile_unread(server_list, dismissed) -> UnreadView:
    """Unread entries the viewer has not dismissed, in server order.

    Entries expose ``unread_key`` and ``is_unread``.
    """
    hidden = {_key(d) for d in dismissed}
    display = [
        entry for entry in server_list
        if entry.is_unread and _key(entry.unread_key) not in hidden
    ]
    return UnreadView(display, len(display))


class UnreadTracker:
    """Applies a DismissedStore to one scope (conversations or notifications)."""

    def __init__(self, store, scope):
        self.store = store
        self.scope = scope

    def observe(self, uid, server_list, fetched) -> UnreadView:
        """Reconcile a snapshot; ``fetched`` marks a fresh authoritative list."""
        if fetched:
            self.store.reset(uid, self.scope)
        return reconcile_unread(server_list, self.store.members(uid, self.scope))

    def dismiss(self, uid, *keys):
        if keys:
            self.store.dismiss(uid, self.scope, *[_key(k) for k in keys])
