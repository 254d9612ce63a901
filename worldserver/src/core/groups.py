"""
Player groups and their flags.

Groups are defined in config.yml; the persistence layer only needs them to
answer whether a group carries the special VIP flag.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from worldserver.src.core.constants import PlayerFlag


@dataclass(frozen=True)
class Group:
    id: int
    name: str
    flags: FrozenSet[str] = field(default_factory=frozenset)

    def has_flag(self, flag: PlayerFlag) -> bool:
        return flag.value in self.flags


class Groups:
    """Registry of configured player groups."""

    def __init__(self, definitions: Iterable[Dict[str, Any]] = ()):
        self._groups: Dict[int, Group] = {}
        for definition in definitions:
            group = Group(
                id=int(definition["id"]),
                name=str(definition.get("name", "")),
                flags=frozenset(definition.get("flags") or ()),
            )
            self._groups[group.id] = group

    def get_group(self, group_id: int) -> Optional[Group]:
        return self._groups.get(group_id)

    def __len__(self) -> int:
        return len(self._groups)


def load_groups() -> Groups:
    from worldserver.src.core.config import settings

    return Groups(settings.GROUPS)
