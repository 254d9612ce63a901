"""
Tests for the persistence entrypoint.
"""

from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from worldserver.src.main import bootstrap
from worldserver.src.services.player_session_service import PlayerSessionService


def test_bootstrap_creates_schema_and_services():
    bind = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    session_service = bootstrap(bind)

    assert isinstance(session_service, PlayerSessionService)
    tables = set(inspect(bind).get_table_names())
    assert {"players", "players_online", "player_items", "account_viplist"} <= tables
    bind.dispose()
