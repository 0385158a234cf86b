"""Rebuild nested reply threads from the flat message list.

The API returns messages in order with a parent pointer each. The tree is
rebuilt from scratch on every fetch; nothing here mutates the input. All
walks use an explicit stack so deep reply chains never touch the
interpreter's recursion limit.
"""

from dataclasses import dataclass, field
from typing import Optional

from storefront.models import Message


@dataclass
class MessageNode:
    message: Message
    depth: int = 0
    children: list = field(default_factory=list)

    @property
    def id(self):
        return self.message.id


def _effective_parents(nodes, position):
    """Map message id -> parent id actually used for attachment.

    Missing parents and self references degrade to roots. A cycle among
    present messages is broken at its earliest message in input order.
    """
    parents = {}
    for message_id, node in nodes.items():
        parent_id = node.message.parent_message_id
        if parent_id is None or parent_id == message_id or parent_id not in nodes:
            parents[message_id] = None
        else:
            parents[message_id] = parent_id

    settled = set()
    for message_id in nodes:
        path = []
        on_path = set()
        current = message_id
        while current is not None and current not in settled and current not in on_path:
            path.append(current)
            on_path.add(current)
            current = parents[current]
        if current is not None and current in on_path:
            cycle = path[path.index(current):]
            parents[min(cycle, key=position.__getitem__)] = None
        settled.update(path)
    return parents


def build_thread(messages) -> list:
    """Turn a flat message sequence into an ordered forest of MessageNode.

    Roots and siblings keep input order. When an id repeats, the first
    occurrence wins.
    """
    nodes = {}
    position = {}
    for message in messages:
        if message.id in nodes:
            continue
        position[message.id] = len(nodes)
        nodes[message.id] = MessageNode(message)

    parents = _effective_parents(nodes, position)

    roots = []
    for message_id, node in nodes.items():
        parent_id = parents[message_id]
        if parent_id is None:
            roots.append(node)
        else:
            nodes[parent_id].children.append(node)

    stack = [(root, 0) for root in roots]
    while stack:
        node, depth = stack.pop()
        node.depth = depth
        stack.extend((child, depth + 1) for child in node.children)

    return roots


def walk_thread(forest):
    """Yield nodes in display order (each parent before its replies)."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten_thread(forest) -> list:
    """Return the messages of a forest in display order."""
    return [node.message for node in walk_thread(forest)]


def render_list(forest, viewer_uid: Optional[str] = None) -> list:
    """Flat, depth-annotated rows for the message list."""
    rows = []
    for node in walk_thread(forest):
        row = node.message.to_dict()
        row['depth'] = node.depth
        row['display_name'] = node.message.display_name
        row['reply_count'] = len(node.children)
        row['can_delete'] = viewer_uid is not None and node.message.sender_uid == viewer_uid
        rows.append(row)
    return rows


def thread_to_dicts(forest) -> list:
    """Nested representation of a forest, built without recursion."""
    out = []
    stack = [(node, out) for node in reversed(forest)]
    while stack:
        node, siblings = stack.pop()
        entry = node.message.to_dict()
        entry['depth'] = node.depth
        entry['replies'] = []
        siblings.append(entry)
        stack.extend((child, entry['replies']) for child in reversed(node.children))
    return out
