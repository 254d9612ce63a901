"""
Service for tracking which players are online.

The in-process set is the source of truth; the ``players_online`` table and
the ``world_players_online`` gauge mirror it. Claiming and releasing an id
is an atomic check-and-set, so two sessions racing for the same player can
never both increment the counter.
"""

import threading
from typing import Optional, Set

from prometheus_client import Gauge
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..core.database import SessionLocal
from ..core.exceptions import StoreError
from ..core.logging_config import get_logger
from ..core.metrics import MetricsHelper, players_online
from ..models.player import PlayerOnline

logger = get_logger(__name__)


class PresenceService:
    """Online-presence set shared by every player session."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        gauge: Optional[Gauge] = None,
    ):
        self._session_factory = session_factory or SessionLocal
        self._gauge = gauge if gauge is not None else players_online
        self._lock = threading.Lock()
        self._online: Set[int] = set()

    def mark_online(self, player_id: int) -> bool:
        """
        Record that a player entered the world.

        Returns:
            True if the player was not online before and is now recorded
        """
        if player_id <= 0:
            return False

        if not self._claim(player_id):
            logger.debug("Player already online", extra={"player_id": player_id})
            return False

        try:
            with self._session_factory() as db:
                with db.begin():
                    db.merge(PlayerOnline(player_id=player_id))
        except SQLAlchemyError as e:
            self._release(player_id)
            error = StoreError(str(e), details={"player_id": player_id})
            logger.error("Failed to record player online", extra=error.to_dict())
            MetricsHelper.track_error("presence", type(e).__name__)
            return False

        logger.info("Player online", extra={"player_id": player_id})
        return True

    def mark_offline(self, player_id: int) -> bool:
        """
        Record that a player left the world.

        The stored row is removed even when the id was not claimed, which
        clears rows left behind by a previous process.

        Returns:
            True if the player was online and has been released
        """
        if player_id <= 0:
            return False

        # Gauge only moves for a claimed id; the row is deleted either way
        released = self._release(player_id)

        try:
            with self._session_factory() as db:
                with db.begin():
                    db.execute(delete(PlayerOnline).where(PlayerOnline.player_id == player_id))
        except SQLAlchemyError as e:
            error = StoreError(str(e), details={"player_id": player_id})
            logger.error("Failed to record player offline", extra=error.to_dict())
            MetricsHelper.track_error("presence", type(e).__name__)

        if released:
            logger.info("Player offline", extra={"player_id": player_id})
        return released

    def is_online(self, player_id: int) -> bool:
        with self._lock:
            return player_id in self._online

    def online_player_ids(self) -> Set[int]:
        with self._lock:
            return set(self._online)

    def _claim(self, player_id: int) -> bool:
        with self._lock:
            if player_id in self._online:
                return False
            self._online.add(player_id)
            self._gauge.inc()
            return True

    def _release(self, player_id: int) -> bool:
        with self._lock:
            if player_id not in self._online:
                return False
            self._online.remove(player_id)
            self._gauge.dec()
            return True
