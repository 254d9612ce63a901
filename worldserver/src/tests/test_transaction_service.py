"""
Tests for TransactionService.
"""

from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

from worldserver.src.models import PlayerStorage
from worldserver.src.schemas.service_results import ServiceResult
from worldserver.src.services.transaction_service import TransactionService


def _storage_values(db, player_id):
    return db.scalars(
        select(PlayerStorage.value).where(PlayerStorage.player_id == player_id)
    ).all()


class TestExecuteWithinTransaction:
    """Tests for TransactionService.execute_within_transaction()"""

    def test_successful_body_is_committed(
        self, session_factory, create_test_account, create_test_player, db
    ):
        player = create_test_player(create_test_account().id, "Bob")

        def body(session):
            session.add(PlayerStorage(player_id=player.id, key=1, value=5))
            return ServiceResult.success_no_data()

        result = TransactionService(session_factory).execute_within_transaction(body)

        assert result.success is True
        assert _storage_values(db, player.id) == [5]

    def test_failed_body_is_rolled_back(
        self, session_factory, create_test_account, create_test_player, db
    ):
        player = create_test_player(create_test_account().id, "Bob")

        def body(session):
            session.add(PlayerStorage(player_id=player.id, key=1, value=5))
            session.flush()
            return ServiceResult.failure("nope", error_code="test_failure")

        result = TransactionService(session_factory).execute_within_transaction(body)

        assert result.error_code == "test_failure"
        assert _storage_values(db, player.id) == []

    def test_store_error_is_translated(self, session_factory):
        def body(session):
            session.execute(text("SELECT * FROM no_such_table"))
            return ServiceResult.success_no_data()

        result = TransactionService(session_factory).execute_within_transaction(
            body, label="broken"
        )

        assert result.success is False
        assert result.error_code == "store_failure"

    def test_unexpected_error_is_rolled_back(
        self, session_factory, create_test_account, create_test_player, db
    ):
        player = create_test_player(create_test_account().id, "Bob")

        def body(session):
            session.add(PlayerStorage(player_id=player.id, key=1, value=5))
            session.flush()
            raise KeyError("slot")

        result = TransactionService(session_factory).execute_within_transaction(body)

        assert result.success is False
        assert result.error_code == "unexpected_failure"
        assert _storage_values(db, player.id) == []

    def test_session_is_closed_afterwards(self, session_factory):
        seen = []

        def body(session):
            seen.append(session)
            return ServiceResult.success_no_data()

        TransactionService(session_factory).execute_within_transaction(body)

        assert not seen[0].in_transaction()

    def test_store_error_during_commit_is_translated(self, session_factory, monkeypatch):
        def body(session):
            def failing_commit():
                raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

            monkeypatch.setattr(session, "commit", failing_commit)
            return ServiceResult.success_no_data()

        result = TransactionService(session_factory).execute_within_transaction(body)

        assert result.success is False
        assert result.error_code == "store_failure"
