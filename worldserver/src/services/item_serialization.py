"""
Flattening and rebuilding of item trees.

Item tables store one row per item. Top-level items use ``pid`` for their
slot, depot id or reward id; every item gets a running ``sid`` starting just
above ``ITEM_SID_START``; items inside a container use the container's
``sid`` as their ``pid``. Flattening is breadth first, so a parent's ``sid``
is always lower than its children's and rebuilding in ``sid`` order never
meets a child before its parent.
"""

from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Mapping, Tuple

from worldserver.src.core.constants import ITEM_SID_START
from worldserver.src.schemas.player_record import Item


def flatten_items(
    top_level: Mapping[int, Item], start_sid: int = ITEM_SID_START
) -> List[Dict[str, Any]]:
    """
    Turn ``{pid: item}`` into row dicts ready for insertion.

    Raises:
        ValueError: a top-level key collides with the sid range
    """
    rows: List[Dict[str, Any]] = []
    queue: Deque[Tuple[Item, int]] = deque()
    sid = start_sid

    for pid in sorted(top_level):
        if pid >= start_sid:
            raise ValueError(f"Top-level item key {pid} overlaps sid range")
        item = top_level[pid]
        sid += 1
        rows.append(_row(pid, sid, item))
        if item.is_container:
            queue.append((item, sid))

    while queue:
        container, parent_sid = queue.popleft()
        for child in container.contents:
            sid += 1
            rows.append(_row(parent_sid, sid, child))
            if child.is_container:
                queue.append((child, sid))

    return rows


def build_item_tree(
    rows: Iterable[Mapping[str, Any]], start_sid: int = ITEM_SID_START
) -> Dict[int, Item]:
    """
    Rebuild ``{pid: item}`` from stored rows.

    Raises:
        ValueError: orphaned row, duplicate top-level key, or a row whose
            parent is not a container
    """
    top_level: Dict[int, Item] = {}
    by_sid: Dict[int, Item] = {}

    for row in sorted(rows, key=lambda r: r["sid"]):
        attributes = dict(row["attributes"] or {})
        is_container = bool(attributes.pop("container", False))
        item = Item(
            item_type=int(row["item_type"]),
            count=int(row["count"]),
            attributes=attributes,
            contents=[] if is_container else None,
        )
        pid = int(row["pid"])
        parent = by_sid.get(pid)
        if parent is not None:
            if parent.contents is None:
                raise ValueError(f"Item sid={row['sid']} placed inside non-container sid={pid}")
            parent.contents.append(item)
        elif pid < start_sid:
            if pid in top_level:
                raise ValueError(f"Duplicate top-level item at pid={pid}")
            top_level[pid] = item
        else:
            raise ValueError(f"Orphaned item sid={row['sid']} (missing parent sid={pid})")
        by_sid[int(row["sid"])] = item

    return top_level


def count_items(items: Iterable[Item]) -> int:
    """Number of items across the given trees, containers included."""
    return sum(1 for root in items for _ in root.walk())


def _row(pid: int, sid: int, item: Item) -> Dict[str, Any]:
    attributes = dict(item.attributes)
    if item.is_container:
        attributes["container"] = True
    return {
        "pid": pid,
        "sid": sid,
        "item_type": item.item_type,
        "count": item.count,
        "attributes": attributes,
    }
