"""
Point-in-time read of one player, consumed by the load pipeline.

A snapshot holds the primary ``players`` row plus one independently
addressable cursor of child rows per facet. Nothing in it can be mutated;
loaders only read.
"""

from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple

Row = Mapping[str, Any]

CHILD_FACETS = (
    "spells",
    "kills",
    "guild",
    "stash",
    "charms",
    "items",
    "depot_items",
    "reward_items",
    "inbox_items",
    "storage",
    "vip",
    "prey",
    "task_hunt",
    "forge_history",
    "bosstiary",
    "wheel",
)


def _freeze(row: Mapping[str, Any]) -> Row:
    return MappingProxyType(dict(row))


class RowSnapshot:
    """Immutable primary row plus per-facet child row cursors."""

    __slots__ = ("_row", "_children", "_opened")

    def __init__(
        self,
        row: Mapping[str, Any],
        children: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None,
    ):
        self._row = _freeze(row)
        frozen: Dict[str, Tuple[Row, ...]] = {}
        for facet, rows in (children or {}).items():
            frozen[facet] = tuple(_freeze(child) for child in rows)
        self._children = MappingProxyType(frozen)
        self._opened: set = set()

    @property
    def row(self) -> Row:
        return self._row

    def column(self, name: str) -> Any:
        """Primary-row column; unknown columns raise KeyError."""
        return self._row[name]

    def cursor(self, facet: str) -> Iterator[Row]:
        """Single-pass iterator over the child rows of ``facet``."""
        self._opened.add(facet)
        return iter(self._children.get(facet, ()))

    def first(self, facet: str) -> Optional[Row]:
        """First child row of ``facet``, or None."""
        return next(self.cursor(facet), None)

    @property
    def opened_cursors(self) -> FrozenSet[str]:
        return frozenset(self._opened)

    def __repr__(self) -> str:
        return f"<RowSnapshot(player_id={self._row.get('id')}, name={self._row.get('name')!r})>"
