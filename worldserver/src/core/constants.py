"""
Shared constants and enums used across multiple layers.

This module contains enums and constants that are needed by both:
- Models (database layer)
- Schemas (aggregate/snapshot layer)
- Services (load/save pipelines and session bookkeeping)

Placing them here avoids circular imports and cross-layer dependencies.
"""

from enum import Enum, IntEnum


class AuthType(str, Enum):
    """How the authentication gate verifies an account."""
    PASSWORD = "password"
    SESSION = "session"


class AccountType(IntEnum):
    """Account access levels stored in accounts.type."""
    NORMAL = 1
    TUTOR = 2
    SENIOR_TUTOR = 3
    GAMEMASTER = 4
    COMMUNITY_MANAGER = 5
    GOD = 6


class AccountError(str, Enum):
    """Outcome of account collaborator operations."""
    NONE = "none"
    NOT_FOUND = "not_found"
    LOAD_FAILED = "load_failed"
    NOT_INITIALIZED = "not_initialized"


class PlayerFlag(str, Enum):
    """Group flags consulted by the persistence layer."""
    SPECIAL_VIP = "special_vip"


class InventorySlot(IntEnum):
    """Top-level inventory slots; rows in player_items use these as pid."""
    HEAD = 1
    NECKLACE = 2
    BACKPACK = 3
    ARMOR = 4
    RIGHT = 5
    LEFT = 6
    LEGS = 7
    FEET = 8
    RING = 9
    AMMO = 10
    STORE_INBOX = 11


# First sid handed out when flattening item trees
ITEM_SID_START = 100

BLESSING_COUNT = 8

# Item type ids of the generated containers
ITEM_STORE_INBOX = 23396
ITEM_INBOX = 14404
ITEM_DEPOT = 3502
ITEM_REWARD_CONTAINER = 19202

DEFAULT_SKILLS = (
    "fist",
    "club",
    "sword",
    "axe",
    "distance",
    "shielding",
    "fishing",
)
DEFAULT_SKILL_LEVEL = 10
