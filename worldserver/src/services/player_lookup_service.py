"""
Single-query accessors around players, accounts and VIP lists.

Name comparisons are case-insensitive; the stored spelling is what callers
get back.
"""

from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..core.constants import AccountType, PlayerFlag
from ..core.database import SessionLocal
from ..core.groups import Groups, load_groups
from ..core.logging_config import get_logger
from ..core.metrics import MetricsHelper
from ..models import AccountVip, House, Player
from ..models.account import Account as AccountModel
from ..schemas.player_record import VipEntry

logger = get_logger(__name__)


class PlayerLookupService:
    """Thin lookups with no orchestration."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        groups: Optional[Groups] = None,
    ):
        self._session_factory = session_factory or SessionLocal
        self._groups = groups if groups is not None else load_groups()

    # =========================================================================
    # PLAYER NAMES
    # =========================================================================

    def get_name_by_guid(self, player_id: int) -> str:
        """Name of the player, or an empty string if there is none."""
        with self._session_factory() as db:
            name = db.scalar(select(Player.name).where(Player.id == player_id))
        return name or ""

    def get_guid_by_name(self, name: str) -> int:
        """Id of the named player, or 0 if there is none."""
        with self._session_factory() as db:
            player_id = db.scalar(
                select(Player.id).where(func.lower(Player.name) == name.lower())
            )
        return player_id or 0

    def get_guid_by_name_ex(self, name: str) -> Optional[Tuple[int, bool, str]]:
        """
        Extended name lookup used by the VIP list.

        Returns:
            ``(player_id, special_vip, canonical_name)`` or None if no player
            has that name. ``special_vip`` is False when the player's group
            is not configured.
        """
        with self._session_factory() as db:
            row = db.execute(
                select(Player.id, Player.name, Player.group_id).where(
                    func.lower(Player.name) == name.lower()
                )
            ).first()

        if row is None:
            return None

        group = self._groups.get_group(row.group_id)
        special_vip = bool(group and group.has_flag(PlayerFlag.SPECIAL_VIP))
        return row.id, special_vip, row.name

    def format_player_name(self, name: str) -> Optional[str]:
        """Stored spelling of ``name``, or None if no player has it."""
        with self._session_factory() as db:
            return db.scalar(
                select(Player.name).where(func.lower(Player.name) == name.lower())
            )

    # =========================================================================
    # BANK, HOUSES, ACCOUNTS
    # =========================================================================

    def increase_bank_balance(self, player_id: int, amount: int) -> bool:
        """Add ``amount`` to the stored balance. Returns False if no row changed."""
        try:
            with self._session_factory() as db:
                with db.begin():
                    result = db.execute(
                        update(Player)
                        .where(Player.id == player_id)
                        .values(balance=Player.balance + amount)
                    )
        except SQLAlchemyError as e:
            logger.error(
                "Failed to increase bank balance",
                extra={"player_id": player_id, "amount": amount, "error": str(e)},
            )
            MetricsHelper.track_error("lookup", type(e).__name__)
            return False
        return result.rowcount == 1

    def has_bidded_on_house(self, player_id: int) -> bool:
        with self._session_factory() as db:
            house_id = db.scalar(
                select(House.id).where(House.highest_bidder == player_id).limit(1)
            )
        return house_id is not None

    def get_account_type(self, account_id: int) -> AccountType:
        """Stored account type; NORMAL when the account does not exist."""
        with self._session_factory() as db:
            account_type = db.scalar(
                select(AccountModel.type).where(AccountModel.id == account_id)
            )
        if account_type is None:
            return AccountType.NORMAL
        return AccountType(account_type)

    # =========================================================================
    # VIP LIST
    # =========================================================================

    def get_vip_entries(self, account_id: int) -> List[VipEntry]:
        """VIP entries of an account, most recently added first."""
        with self._session_factory() as db:
            rows = db.execute(
                select(
                    AccountVip.player_id,
                    Player.name,
                    AccountVip.description,
                    AccountVip.icon,
                    AccountVip.notify,
                )
                .join(Player, Player.id == AccountVip.player_id)
                .where(AccountVip.account_id == account_id)
                .order_by(AccountVip.id.desc())
            ).all()

        return [
            VipEntry(
                player_id=row.player_id,
                name=row.name,
                description=row.description,
                icon=row.icon,
                notify=bool(row.notify),
            )
            for row in rows
        ]

    def add_vip_entry(
        self,
        account_id: int,
        player_id: int,
        description: str = "",
        icon: int = 0,
        notify: bool = False,
    ) -> bool:
        """Insert a VIP entry. An existing entry for the same player is kept."""
        return self._write_vip(
            "add",
            account_id,
            player_id,
            lambda db: db.add(
                AccountVip(
                    account_id=account_id,
                    player_id=player_id,
                    description=description,
                    icon=icon,
                    notify=notify,
                )
            ),
        )

    def edit_vip_entry(
        self,
        account_id: int,
        player_id: int,
        description: str = "",
        icon: int = 0,
        notify: bool = False,
    ) -> bool:
        """Update every entry of ``account_id`` for ``player_id``."""
        return self._write_vip(
            "edit",
            account_id,
            player_id,
            lambda db: db.execute(
                update(AccountVip)
                .where(AccountVip.account_id == account_id)
                .where(AccountVip.player_id == player_id)
                .values(description=description, icon=icon, notify=notify)
            ),
        )

    def remove_vip_entry(self, account_id: int, player_id: int) -> bool:
        return self._write_vip(
            "remove",
            account_id,
            player_id,
            lambda db: db.execute(
                delete(AccountVip)
                .where(AccountVip.account_id == account_id)
                .where(AccountVip.player_id == player_id)
            ),
        )

    def _write_vip(self, action: str, account_id: int, player_id: int, write) -> bool:
        try:
            with self._session_factory() as db:
                with db.begin():
                    write(db)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to {action} VIP entry",
                extra={"account_id": account_id, "player_id": player_id, "error": str(e)},
            )
            MetricsHelper.track_error("lookup", type(e).__name__)
            return False
        return True
