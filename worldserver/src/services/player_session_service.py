"""
Service wiring the gate, the pipelines and the presence tracker into the
login and logout sequences of a game session.
"""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from ..core.logging_config import get_logger
from ..schemas.player_record import PlayerRecord
from .authentication_service import AuthenticationService
from .player_loader import PlayerLoadService
from .player_saver import PlayerSaveService
from .presence_service import PresenceService

logger = get_logger(__name__)


class PlayerSessionService:
    """Login and logout for one world process."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        presence: Optional[PresenceService] = None,
        authentication: Optional[AuthenticationService] = None,
        loader: Optional[PlayerLoadService] = None,
        saver: Optional[PlayerSaveService] = None,
    ):
        self.presence = presence or PresenceService(session_factory)
        self.authentication = authentication or AuthenticationService(session_factory)
        self.loader = loader or PlayerLoadService(session_factory)
        self.saver = saver or PlayerSaveService(session_factory)

    def login(
        self,
        account_descriptor: str,
        password: Optional[str],
        character_name: str,
        old_protocol: bool = False,
    ) -> Optional[PlayerRecord]:
        """
        Authenticate, fully load the character and mark it online.

        Returns:
            The loaded record, or None if entry is denied
        """
        account_id = self.authentication.game_world_authentication(
            account_descriptor, password, character_name, old_protocol
        )
        if account_id is None:
            return None

        record = PlayerRecord()
        if not self.loader.load_player_by_name(record, character_name, shallow=False):
            logger.warning(
                "Login denied - player could not be loaded",
                extra={"account_id": account_id, "character": character_name},
            )
            return None

        if not self.presence.mark_online(record.id):
            logger.warning(
                "Login denied - player is already online",
                extra={"account_id": account_id, "player_id": record.id},
            )
            return None

        return record

    def logout(self, record: PlayerRecord) -> bool:
        """
        Save the record and mark the player offline.

        The player is marked offline even when the save fails.

        Returns:
            True if the save committed
        """
        saved = self.saver.save_player(record)
        if not saved:
            logger.error(
                "Logout save failed",
                extra={"player_id": record.id, "player_name": record.name},
            )
        self.presence.mark_offline(record.id)
        return saved
