"""
Tests for the player save pipeline.

Tests cover:
- Round trip through save and full load
- Atomicity when a sub-saver fails
- Idempotent re-runs
- Shallow-loaded records leaving full-only rows alone
- Fail-fast order and error reporting
"""

import pytest
from sqlalchemy import func, select

from worldserver.src.core.constants import InventorySlot
from worldserver.src.models import (
    ForgeHistory,
    Player,
    PlayerBosstiary,
    PlayerDepotItem,
    PlayerItem,
    PlayerStorage,
    PlayerWheelData,
)
from worldserver.src.schemas.player_record import (
    ForgeHistoryEntry,
    Item,
    KillEntry,
    PlayerRecord,
    WheelState,
)
from worldserver.src.schemas.service_results import FacetResult
from worldserver.src.services.player_loader import PlayerLoadService
from worldserver.src.services.player_saver import (
    SAVE_STEPS,
    PlayerSaveService,
    facet_saver,
    save_player_first,
)


@pytest.fixture
def loader(session_factory):
    return PlayerLoadService(session_factory)


@pytest.fixture
def saver(session_factory):
    return PlayerSaveService(session_factory)


@pytest.fixture
def bob(create_test_account, create_test_player, seed_player_state):
    account = create_test_account("alice")
    player = create_test_player(account.id, "Bob", {"level": 8})
    seed_player_state(player.id, account.id)
    return player


def _load(loader, player_id, shallow=False) -> PlayerRecord:
    record = PlayerRecord()
    assert loader.load_player_by_id(record, player_id, shallow=shallow)
    return record


def _count(db, model, player_id) -> int:
    return db.scalar(select(func.count()).select_from(model).where(model.player_id == player_id))


class TestSaveRoundTrip:
    """Tests for saving a loaded record and loading it back"""

    def test_unchanged_record_loads_back_equal(self, loader, saver, bob):
        record = _load(loader, bob.id)

        assert saver.save_player(record) is True

        assert _load(loader, bob.id) == record

    def test_changes_are_persisted(self, loader, saver, bob):
        record = _load(loader, bob.id)
        record.level = 9
        record.health = 90
        record.position.x = 321
        record.storage[10003] = 4
        record.kills.append(KillEntry(target=100, time=1700000500))
        record.inventory[int(InventorySlot.HEAD)] = Item(3355)
        record.depots[2] = Item.container(3502, [Item(3031, count=7)])
        record.wheel.slot_points[9] = 1
        record.forge_history.append(
            ForgeHistoryEntry(action_type=2, description="Transferred", done_at=1700000600)
        )

        assert saver.save_player(record) is True
        reloaded = _load(loader, bob.id)

        assert reloaded.level == 9
        assert reloaded.health == 90
        assert reloaded.position.x == 321
        assert reloaded.storage[10003] == 4
        assert reloaded.kills[-1].target == 100
        assert reloaded.inventory[int(InventorySlot.HEAD)].item_type == 3355
        assert reloaded.depots[2].contents[0].count == 7
        assert reloaded.wheel.slot_points == {1: 3, 5: 2, 9: 1}
        assert [entry.description for entry in reloaded.forge_history] == [
            "Fused a sword",
            "Transferred",
        ]

    def test_store_inbox_is_saved_in_its_slot(self, loader, saver, bob, db):
        record = _load(loader, bob.id)
        record.store_inbox.contents.append(Item(3031, count=50))

        saver.save_player(record)

        top_level = db.execute(
            select(PlayerItem.pid, PlayerItem.item_type)
            .where(PlayerItem.player_id == bob.id)
            .where(PlayerItem.pid < 100)
            .order_by(PlayerItem.pid)
        ).all()
        assert [tuple(row) for row in top_level] == [(3, 2854), (11, 23396)]
        assert _load(loader, bob.id).store_inbox.contents[0].count == 50


class TestSaveIdempotence:
    """Tests for re-running the save pipeline"""

    def test_saving_twice_leaves_same_rows(self, loader, saver, bob, db):
        record = _load(loader, bob.id)

        saver.save_player(record)
        first_items = _count(db, PlayerItem, bob.id)
        first_storage = _count(db, PlayerStorage, bob.id)
        saver.save_player(record)

        assert _count(db, PlayerItem, bob.id) == first_items
        assert _count(db, PlayerStorage, bob.id) == first_storage
        assert _load(loader, bob.id) == record


class TestShallowRecords:
    """Tests for saving records that were not fully loaded"""

    def test_full_only_rows_survive_shallow_save(self, loader, saver, bob, db):
        record = _load(loader, bob.id, shallow=True)

        assert saver.save_player(record) is True

        assert _count(db, ForgeHistory, bob.id) == 1
        assert _count(db, PlayerBosstiary, bob.id) == 1
        assert _count(db, PlayerWheelData, bob.id) == 1

    def test_loaded_empty_wheel_clears_points(self, loader, saver, bob):
        record = _load(loader, bob.id)
        record.wheel = WheelState()

        saver.save_player(record)

        assert _load(loader, bob.id).wheel.slot_points == {}


class TestSaveAtomicity:
    """Tests for all-or-nothing behaviour"""

    def test_inventory_failure_rolls_back_earlier_facets(self, loader, saver, bob, db):
        record = _load(loader, bob.id)
        before = _load(loader, bob.id)
        record.level = 50
        record.stash[3035] = 9
        record.inventory[int(InventorySlot.HEAD)] = Item(item_type=None)

        assert saver.save_player(record) is False

        assert _load(loader, bob.id) == before
        assert db.scalar(select(Player.level).where(Player.id == bob.id)) == 8

    def test_out_of_range_balance_fails_without_writing(self, loader, saver, bob, db):
        record = _load(loader, bob.id)
        before = _load(loader, bob.id)
        record.balance = 2**63
        record.stash[3035] = 9

        assert saver.save_player(record) is False

        assert _load(loader, bob.id) == before

    def test_unexpected_saver_error_rolls_back(self, loader, session_factory, bob, db):
        def raw_saver(db, record):
            raise KeyError("slot")

        service = PlayerSaveService(session_factory, savers=list(SAVE_STEPS[:3]) + [raw_saver])
        record = _load(loader, bob.id)
        record.level = 50

        assert service.save_player(record) is False

        assert db.scalar(select(Player.level).where(Player.id == bob.id)) == 8

    def test_failure_stops_at_failing_facet(self, loader, session_factory, bob):
        calls = []

        def tracking(saver_fn):
            def wrapper(db, record):
                calls.append(saver_fn.facet)
                return saver_fn(db, record)

            return wrapper

        service = PlayerSaveService(session_factory, savers=[tracking(s) for s in SAVE_STEPS])
        record = _load(loader, bob.id)
        record.depots[1] = Item(item_type=None)

        assert service.save_player(record) is False

        assert calls[-1] == "depot_items"
        assert "storage" not in calls

    def test_failure_is_logged_with_facet_and_aggregate(self, loader, saver, bob, caplog):
        record = _load(loader, bob.id)
        record.inventory[int(InventorySlot.HEAD)] = Item(item_type=None)

        saver.save_player(record)

        messages = [r.getMessage() for r in caplog.records]
        assert any("Failed to save player items: Bob" in message for message in messages)
        assert "Error occurred saving player" in messages

    def test_unknown_player_fails(self, saver):
        assert saver.save_player(PlayerRecord(id=404, name="Ghost")) is False

    def test_missing_record_fails(self, saver):
        assert saver.save_player(None) is False

    def test_reward_key_in_sid_range_fails(self, loader, saver, bob, db):
        record = _load(loader, bob.id)
        record.rewards[150] = Item.container(19202)

        assert saver.save_player(record) is False
        assert _count(db, PlayerDepotItem, bob.id) == 2


class TestFacetSaver:
    """Tests for the facet_saver decorator"""

    def test_value_error_becomes_failed_result(self, db):
        @facet_saver("broken")
        def broken(db, record):
            raise ValueError("bad data")

        result = broken(db, PlayerRecord(name="Bob"))

        assert isinstance(result, FacetResult)
        assert result.success is False
        assert result.facet == "broken"
        assert result.error_code == "save_broken_failed"
        assert result.message == "bad data"

    def test_any_error_names_the_facet(self, db):
        @facet_saver("lookup")
        def broken(db, record):
            raise KeyError("slot")

        result = broken(db, PlayerRecord(name="Bob"))

        assert result.success is False
        assert result.facet == "lookup"
        assert "slot" in result.message

    def test_missing_player_row_fails_first_facet(self, db):
        result = save_player_first(db, PlayerRecord(id=404, name="Ghost"))

        assert result.success is False
        assert result.facet == "first"
