"""
Tests for PlayerSessionService login and logout.
"""

import pytest
from sqlalchemy import text

from worldserver.src.core.constants import InventorySlot
from worldserver.src.schemas.player_record import Item, PlayerRecord
from worldserver.src.services.authentication_service import AuthenticationService
from worldserver.src.services.player_loader import PlayerLoadService
from worldserver.src.services.player_session_service import PlayerSessionService

# Password set by the create_test_account fixture
TEST_PASSWORD = "correct horse"


@pytest.fixture
def sessions(session_factory, presence):
    return PlayerSessionService(
        session_factory,
        presence=presence,
        authentication=AuthenticationService(session_factory, auth_type="password"),
    )


@pytest.fixture
def alice_account(create_test_account, create_test_player, seed_player_state):
    account = create_test_account("alice", email="alice@example.com")
    player = create_test_player(account.id, "Alice")
    seed_player_state(player.id, account.id)
    return account


class TestLogin:
    """Tests for PlayerSessionService.login()"""

    def test_own_character_enters_world(self, sessions, alice_account, online_count):
        record = sessions.login("alice@example.com", TEST_PASSWORD, "Alice")

        assert record is not None
        assert record.account_id == alice_account.id
        assert record.forge_history is not None
        assert sessions.presence.is_online(record.id)
        assert online_count() == 1

    def test_character_not_on_account_is_denied(self, sessions, alice_account, online_count):
        assert sessions.login("alice@example.com", TEST_PASSWORD, "Bob") is None
        assert online_count() == 0

    def test_wrong_password_is_denied(self, sessions, alice_account):
        assert sessions.login("alice@example.com", "hunter2", "Alice") is None

    def test_second_login_is_denied_while_online(self, sessions, alice_account, online_count):
        sessions.login("alice@example.com", TEST_PASSWORD, "Alice")

        assert sessions.login("alice@example.com", TEST_PASSWORD, "Alice") is None
        assert online_count() == 1

    def test_load_failure_denies_entry(self, session_factory, presence, alice_account, online_count):
        class FailingLoader(PlayerLoadService):
            def load_player(self, record, snapshot, shallow=False):
                return False

        sessions = PlayerSessionService(
            session_factory,
            presence=presence,
            authentication=AuthenticationService(session_factory, auth_type="password"),
            loader=FailingLoader(session_factory),
        )

        assert sessions.login("alice@example.com", TEST_PASSWORD, "Alice") is None
        assert presence.online_player_ids() == set()
        assert online_count() == 0

    def test_store_failure_during_load_denies_entry(self, sessions, engine, alice_account, online_count):
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE player_spells"))

        assert sessions.login("alice@example.com", TEST_PASSWORD, "Alice") is None
        assert sessions.presence.online_player_ids() == set()
        assert online_count() == 0


class TestLogout:
    """Tests for PlayerSessionService.logout()"""

    def test_logout_saves_and_goes_offline(self, sessions, session_factory, alice_account, online_count):
        record = sessions.login("alice@example.com", TEST_PASSWORD, "Alice")
        record.balance = 1234

        assert sessions.logout(record) is True

        assert online_count() == 0
        reloaded = PlayerRecord()
        PlayerLoadService(session_factory).load_player_by_id(reloaded, record.id)
        assert reloaded.balance == 1234

    def test_failed_save_still_goes_offline(self, sessions, session_factory, alice_account, online_count):
        record = sessions.login("alice@example.com", TEST_PASSWORD, "Alice")
        before = PlayerRecord()
        PlayerLoadService(session_factory).load_player_by_id(before, record.id, shallow=False)
        record.balance = 99
        record.inventory[int(InventorySlot.HEAD)] = Item(item_type=None)

        assert sessions.logout(record) is False

        assert online_count() == 0
        after = PlayerRecord()
        PlayerLoadService(session_factory).load_player_by_id(after, record.id, shallow=False)
        assert after == before
