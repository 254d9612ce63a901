"""
SQLAlchemy models for the world server persistence layer.

Importing this package registers every table on ``Base.metadata``.
"""

from .base import Base
from .account import Account, AccountSession, AccountVip
from .player import Player, PlayerOnline
from .guild import Guild, GuildRank, GuildMembership
from .house import House
from .item import (
    PlayerItem,
    PlayerDepotItem,
    PlayerRewardItem,
    PlayerInboxItem,
    PlayerStashItem,
)
from .progress import (
    PlayerKill,
    PlayerSpell,
    PlayerStorage,
    PlayerCharm,
    PlayerPrey,
    PlayerTaskHunt,
    ForgeHistory,
    PlayerBosstiary,
    PlayerWheelData,
)

__all__ = [
    "Base",
    "Account",
    "AccountSession",
    "AccountVip",
    "Player",
    "PlayerOnline",
    "Guild",
    "GuildRank",
    "GuildMembership",
    "House",
    "PlayerItem",
    "PlayerDepotItem",
    "PlayerRewardItem",
    "PlayerInboxItem",
    "PlayerStashItem",
    "PlayerKill",
    "PlayerSpell",
    "PlayerStorage",
    "PlayerCharm",
    "PlayerPrey",
    "PlayerTaskHunt",
    "ForgeHistory",
    "PlayerBosstiary",
    "PlayerWheelData",
]
