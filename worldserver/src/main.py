"""
World persistence entrypoint.
Configures logging and metrics and wires the session services together.
"""

from typing import Optional

from sqlalchemy.engine import Engine

from worldserver.src.core.config import settings
from worldserver.src.core.database import build_session_factory, engine, init_db
from worldserver.src.core.logging_config import get_logger, setup_logging
from worldserver.src.core.metrics import init_metrics
from worldserver.src.services.player_session_service import PlayerSessionService

logger = get_logger(__name__)


def bootstrap(bind: Optional[Engine] = None) -> PlayerSessionService:
    """
    Prepare the store and return the login/logout service for this process.

    Only one PlayerSessionService should exist per process; it owns the
    presence set.
    """
    bind = bind if bind is not None else engine
    init_db(bind)
    session_service = PlayerSessionService(build_session_factory(bind))
    logger.info("World persistence ready", extra={"database": bind.dialect.name})
    return session_service


def main() -> None:
    setup_logging()
    init_metrics(settings.ENVIRONMENT)
    bootstrap()


if __name__ == "__main__":
    main()
